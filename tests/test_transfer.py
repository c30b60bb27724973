# tests/test_transfer.py

import os
import threading
from decimal import Decimal

import pytest
from fastapi import HTTPException
from sqlalchemy import create_engine
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import sessionmaker

from app.crud import user as crud_user
from app.db.base import Base
from app.models.ledger import LedgerEntryKind
from app.models.notification import Notification
from app.models.transfer import Transfer
from app.models.user import User, UserType
from app.schemas.transfer import TransferCreate
from app.services import ledger as ledger_service
from app.services import transfer as transfer_service


def test_transfer_moves_balance(db_session, client_user, other_client, fund):
    fund(client_user, "10.00")

    result = transfer_service.transfer(db_session, client_user, other_client.id, Decimal("4.00"), "lunch")

    assert result.amount == Decimal("4.00")
    assert ledger_service.get_balance(db_session, client_user.id) == Decimal("6.00")
    assert ledger_service.get_balance(db_session, other_client.id) == Decimal("4.00")
    # Уведомления и отправителю, и получателю
    assert db_session.query(Notification).filter(Notification.user_id == client_user.id).count() == 1
    assert db_session.query(Notification).filter(Notification.user_id == other_client.id).count() == 1


def test_transfer_below_minimum_is_rejected(db_session, client_user, other_client, fund):
    fund(client_user, "10.00")
    with pytest.raises(HTTPException) as exc_info:
        transfer_service.transfer(db_session, client_user, other_client.id, Decimal("0.50"))
    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == "Minimum transfer amount is $1.00"


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
def test_transfer_non_positive_is_rejected(db_session, client_user, other_client, amount):
    with pytest.raises(HTTPException) as exc_info:
        transfer_service.transfer(db_session, client_user, other_client.id, amount)
    assert exc_info.value.detail == "Transfer amount must be positive"


def test_self_transfer_is_rejected(db_session, client_user, fund):
    fund(client_user, "10.00")
    with pytest.raises(HTTPException) as exc_info:
        transfer_service.transfer(db_session, client_user, client_user.id, Decimal("2.00"))
    assert exc_info.value.status_code == 400


def test_unknown_recipient_is_404(db_session, client_user, fund):
    fund(client_user, "10.00")
    with pytest.raises(HTTPException) as exc_info:
        transfer_service.transfer(db_session, client_user, 9999, Decimal("2.00"))
    assert exc_info.value.status_code == 404


def test_sequential_transfers_cannot_overspend(db_session, client_user, other_client, fund):
    """Два перевода по 6.00 при балансе 10.00: второй отклоняется."""
    fund(client_user, "10.00")
    transfer_service.transfer(db_session, client_user, other_client.id, Decimal("6.00"))

    with pytest.raises(HTTPException) as exc_info:
        transfer_service.transfer(db_session, client_user, other_client.id, Decimal("6.00"))
    assert exc_info.value.detail == "Insufficient balance"
    db_session.rollback()

    assert db_session.query(Transfer).count() == 1
    assert ledger_service.get_balance(db_session, client_user.id) == Decimal("4.00")


def test_create_transfer_by_email(db_session, client_user, other_client, fund):
    fund(client_user, "10.00")
    data = TransferCreate(recipient_email="BRUNO@example.com", amount=Decimal("3.00"))

    result = transfer_service.create_transfer(db_session, client_user, data)
    assert result.to_user_id == other_client.id


def test_create_transfer_rolls_back_on_failure(db_session, client_user, other_client):
    data = TransferCreate(recipient_id=other_client.id, amount=Decimal("3.00"))
    with pytest.raises(HTTPException):
        transfer_service.create_transfer(db_session, client_user, data)
    assert db_session.query(Transfer).count() == 0


def test_transfer_history_includes_both_directions(db_session, client_user, other_client, fund):
    fund(client_user, "10.00")
    fund(other_client, "10.00")
    transfer_service.transfer(db_session, client_user, other_client.id, Decimal("2.00"))
    transfer_service.transfer(db_session, other_client, client_user.id, Decimal("1.00"))

    page = transfer_service.get_paginated_transfers(db_session, client_user, page=1, size=10)
    assert page.total_items == 2


def test_account_lock_uses_select_for_update(db_session):
    """Проверка баланса сериализуется блокировкой строки пользователя в PostgreSQL."""
    query = db_session.query(User).filter(User.id == 1).with_for_update()
    compiled = str(query.statement.compile(dialect=postgresql.dialect()))
    assert "FOR UPDATE" in compiled


def test_lock_user_returns_row(db_session, client_user):
    assert crud_user.lock_user(db_session, client_user.id).id == client_user.id
    assert crud_user.lock_user(db_session, 9999) is None


def test_transfer_to_merchant_is_rejected(db_session, client_user, merchant_user, fund):
    fund(client_user, "100.00")

    with pytest.raises(HTTPException) as exc_info:
        transfer_service.transfer(db_session, client_user, merchant_user.id, Decimal("60.00"))
    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == "Recipient must be a client"
    db_session.rollback()

    assert ledger_service.get_balance(db_session, merchant_user.id) == Decimal("0.00")
    assert ledger_service.get_balance(db_session, client_user.id) == Decimal("100.00")


def test_create_transfer_by_id_requires_client_recipient(db_session, client_user, admin_user, fund):
    fund(client_user, "10.00")
    data = TransferCreate(recipient_id=admin_user.id, amount=Decimal("5.00"))

    with pytest.raises(HTTPException) as exc_info:
        transfer_service.create_transfer(db_session, client_user, data)
    assert exc_info.value.detail == "Recipient must be a client"
    assert db_session.query(Transfer).count() == 0


POSTGRES_DSN = os.getenv("TEST_POSTGRES_DSN")


@pytest.mark.skipif(not POSTGRES_DSN, reason="TEST_POSTGRES_DSN is not set")
def test_concurrent_transfers_only_one_succeeds():
    """
    Два параллельных перевода по 6.00 при балансе 10.00 на PostgreSQL:
    блокировка строки отправителя пропускает ровно один.
    """
    pg_engine = create_engine(POSTGRES_DSN)
    PgSession = sessionmaker(autocommit=False, autoflush=False, bind=pg_engine)
    Base.metadata.create_all(bind=pg_engine)
    try:
        with PgSession() as db:
            sender = crud_user.create_user(db, "Sender", "sender@example.com", "x", UserType.CLIENT)
            recipient = crud_user.create_user(db, "Recipient", "recipient@example.com", "x", UserType.CLIENT)
            ledger_service.credit(db, sender.id, Decimal("10.00"), LedgerEntryKind.CASHBACK, reference_id=1)
            db.commit()
            sender_id, recipient_id = sender.id, recipient.id

        barrier = threading.Barrier(2)
        outcomes = []

        def worker():
            with PgSession() as db:
                sender = crud_user.get_user_by_id(db, sender_id)
                barrier.wait()
                try:
                    transfer_service.transfer(db, sender, recipient_id, Decimal("6.00"))
                    outcomes.append("ok")
                except HTTPException as e:
                    db.rollback()
                    outcomes.append(e.detail)

        threads = [threading.Thread(target=worker) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert sorted(outcomes) == ["Insufficient balance", "ok"]
        with PgSession() as db:
            assert ledger_service.get_balance(db, sender_id) == Decimal("4.00")
            assert db.query(Transfer).count() == 1
    finally:
        Base.metadata.drop_all(bind=pg_engine)
        pg_engine.dispose()
