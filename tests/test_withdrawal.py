# tests/test_withdrawal.py

from decimal import Decimal

import pytest
from fastapi import HTTPException

from app.models.audit import AuditLog
from app.models.ledger import LedgerEntryKind
from app.models.notification import Notification
from app.schemas.withdrawal import WithdrawalProcess, WithdrawalRequestCreate
from app.services import ledger as ledger_service
from app.services import withdrawal as withdrawal_service


def _request_data(amount: str) -> WithdrawalRequestCreate:
    return WithdrawalRequestCreate(
        amount=Decimal(amount),
        full_name="Mario Rossi",
        store_name="Mario's Store",
        phone="+15550001111",
        email="mario@example.com",
        bank_name="First Bank",
        agency="0001",
        account="123456-7",
        payment_method="bank",
    )


def test_request_below_minimum_is_rejected(db_session, merchant_user, fund):
    fund(merchant_user, "100.00")
    with pytest.raises(HTTPException) as exc_info:
        withdrawal_service.create_request(db_session, merchant_user, _request_data("49.99"))
    assert exc_info.value.status_code == 400
    assert "Minimum withdrawal amount" in exc_info.value.detail


def test_request_cannot_exceed_available_balance(db_session, merchant_user, fund):
    fund(merchant_user, "100.00")
    withdrawal_service.create_request(db_session, merchant_user, _request_data("60.00"))

    # Остаток 100 - 60 (в ожидании) = 40 < 50
    with pytest.raises(HTTPException) as exc_info:
        withdrawal_service.create_request(db_session, merchant_user, _request_data("50.00"))
    assert exc_info.value.detail == "Insufficient balance"


def test_request_does_not_debit_and_notifies_admins(db_session, merchant_user, admin_user, fund):
    fund(merchant_user, "100.00")
    request = withdrawal_service.create_request(db_session, merchant_user, _request_data("80.00"))

    assert request.status == "pending"
    assert ledger_service.get_balance(db_session, merchant_user.id) == Decimal("100.00")
    assert withdrawal_service.get_available_balance(db_session, merchant_user.id) == Decimal("20.00")
    assert db_session.query(Notification).filter(Notification.user_id == admin_user.id).count() == 1
    assert db_session.query(Notification).filter(Notification.user_id == merchant_user.id).count() == 1


def test_approval_debits_ledger(db_session, merchant_user, admin_user, fund):
    fund(merchant_user, "100.00")
    request = withdrawal_service.create_request(db_session, merchant_user, _request_data("80.00"))

    processed = withdrawal_service.process_request(
        db_session, admin_user, request.id, WithdrawalProcess(status="completed", notes="paid")
    )

    assert processed.status == "completed"
    assert processed.processed_by == admin_user.id
    assert processed.processed_at is not None
    assert processed.notes == "paid"
    assert ledger_service.get_balance(db_session, merchant_user.id) == Decimal("20.00")
    assert ledger_service.get_total_by_kind(
        db_session, merchant_user.id, LedgerEntryKind.WITHDRAWAL
    ) == Decimal("-80.00")
    assert db_session.query(AuditLog).filter(AuditLog.action == "withdrawal_processed").count() == 1


def test_rejection_does_not_debit(db_session, merchant_user, admin_user, fund):
    fund(merchant_user, "100.00")
    request = withdrawal_service.create_request(db_session, merchant_user, _request_data("80.00"))

    processed = withdrawal_service.process_request(
        db_session, admin_user, request.id, WithdrawalProcess(status="rejected", notes="wrong account")
    )

    assert processed.status == "rejected"
    assert ledger_service.get_balance(db_session, merchant_user.id) == Decimal("100.00")
    # После отклонения сумма снова доступна
    assert withdrawal_service.get_available_balance(db_session, merchant_user.id) == Decimal("100.00")


def test_request_is_processed_only_once(db_session, merchant_user, admin_user, fund):
    fund(merchant_user, "200.00")
    request = withdrawal_service.create_request(db_session, merchant_user, _request_data("80.00"))
    withdrawal_service.process_request(db_session, admin_user, request.id, WithdrawalProcess(status="completed"))

    with pytest.raises(HTTPException) as exc_info:
        withdrawal_service.process_request(db_session, admin_user, request.id, WithdrawalProcess(status="rejected"))
    assert exc_info.value.status_code == 400
    assert ledger_service.get_balance(db_session, merchant_user.id) == Decimal("120.00")


def test_unknown_request_is_404(db_session, admin_user):
    with pytest.raises(HTTPException) as exc_info:
        withdrawal_service.process_request(db_session, admin_user, 9999, WithdrawalProcess(status="completed"))
    assert exc_info.value.status_code == 404


def test_blank_banking_fields_are_rejected():
    with pytest.raises(ValueError):
        WithdrawalRequestCreate(
            amount=Decimal("60.00"), full_name="  ", store_name="S", phone="1", email="a@example.com",
            bank_name="B", agency="1", account="1", payment_method="bank",
        )


def test_listing_with_status_filter(db_session, merchant_user, admin_user, fund):
    fund(merchant_user, "200.00")
    first = withdrawal_service.create_request(db_session, merchant_user, _request_data("60.00"))
    withdrawal_service.create_request(db_session, merchant_user, _request_data("70.00"))
    withdrawal_service.process_request(db_session, admin_user, first.id, WithdrawalProcess(status="rejected"))

    pending = withdrawal_service.get_all_requests(db_session, page=1, size=10, status_filter="pending")
    assert pending.total_items == 1
    assert withdrawal_service.get_user_requests(db_session, merchant_user, page=1, size=10).total_items == 2
