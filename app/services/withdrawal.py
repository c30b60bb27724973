# app/services/withdrawal.py

import logging
import math
from datetime import datetime, timezone
from decimal import Decimal
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.crud import audit as crud_audit
from app.crud import withdrawal as crud_withdrawal
from app.models.ledger import LedgerEntryKind
from app.models.user import User
from app.models.withdrawal import WithdrawalRequest, WithdrawalStatus
from app.schemas.withdrawal import PaginatedWithdrawalRequests, WithdrawalProcess, WithdrawalRequestCreate
from app.services import ledger as ledger_service
from app.services import notification as notification_service
from app.services import sales as sales_service
from app.services import settings as settings_service
from app.utils.money import format_money, parse_money, quantize

logger = logging.getLogger(__name__)


def get_available_balance(db: Session, user_id: int, exclude_request_id: int | None = None) -> Decimal:
    """Баланс минус суммы других заявок, ожидающих обработки."""
    balance = ledger_service.get_balance(db, user_id)
    reserved = parse_money(
        crud_withdrawal.sum_pending_amount(db, user_id, exclude_id=exclude_request_id), field="pending_withdrawals"
    )
    return balance - reserved


def create_request(db: Session, merchant_user: User, request_data: WithdrawalRequestCreate) -> WithdrawalRequest:
    """
    Продавец создает заявку на вывод. Средства не списываются до одобрения,
    но сумма резервируется: новые заявки не могут превысить доступный остаток.
    """
    merchant = sales_service.get_merchant_for_user(db, merchant_user)
    amount = quantize(request_data.amount)

    rates = settings_service.get_rates(db)
    if amount < rates.min_withdrawal:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Minimum withdrawal amount is {format_money(rates.min_withdrawal)}"
        )

    # Сериализуем проверку остатка с другими операциями по этому счету
    ledger_service.get_locked_balance(db, merchant_user.id)
    available = get_available_balance(db, merchant_user.id)
    if amount > available:
        logger.warning(
            f"Withdrawal request rejected for user {merchant_user.id}: amount {amount}, available {available}."
        )
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Insufficient balance")

    request = crud_withdrawal.create_withdrawal_request(
        db,
        user_id=merchant_user.id,
        merchant_id=merchant.id,
        amount=amount,
        payment_method=request_data.payment_method,
        full_name=request_data.full_name,
        store_name=request_data.store_name,
        phone=request_data.phone,
        email=str(request_data.email),
        bank_name=request_data.bank_name,
        agency=request_data.agency,
        account=request_data.account,
    )
    db.commit()
    db.refresh(request)
    logger.info(f"Withdrawal request {request.id} created by user {merchant_user.id}: {amount} via {request.payment_method}.")

    notification_service.create_withdrawal_request_notification(db, request)
    notification_service.create_admin_withdrawal_notification(db, request)
    return request


def process_request(
    db: Session, admin: User, request_id: int, process_data: WithdrawalProcess, ip_address: str | None = None
) -> WithdrawalRequest:
    """
    Администратор переводит заявку pending -> completed | rejected ровно один раз.
    Одобрение списывает сумму с леджера в той же транзакции.
    """
    request = crud_withdrawal.get_withdrawal_request_for_update(db, request_id)
    if not request:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Withdrawal request not found")

    if request.status != WithdrawalStatus.PENDING:
        logger.warning(f"Admin {admin.id} tried to process withdrawal {request.id} already in status '{request.status}'.")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Withdrawal request was already processed ({request.status})"
        )

    if process_data.status == WithdrawalStatus.COMPLETED:
        reserved = parse_money(
            crud_withdrawal.sum_pending_amount(db, request.user_id, exclude_id=request.id), field="pending_withdrawals"
        )
        ledger_service.debit(
            db,
            user_id=request.user_id,
            amount=parse_money(request.amount),
            kind=LedgerEntryKind.WITHDRAWAL,
            reference_id=request.id,
            description=f"Withdrawal #{request.id} via {request.payment_method}",
            reserved=reserved,
        )

    request.status = process_data.status
    request.processed_by = admin.id
    request.processed_at = datetime.now(timezone.utc)
    if process_data.notes:
        request.notes = process_data.notes

    crud_audit.create_log(
        db, action="withdrawal_processed", user_id=admin.id, ip_address=ip_address,
        details=f"Withdrawal {request.id} of {request.amount} for user {request.user_id}: {process_data.status}",
    )
    db.commit()
    db.refresh(request)
    logger.info(f"Withdrawal {request.id} processed by admin {admin.id}: {request.status}.")

    notification_service.create_withdrawal_request_notification(db, request)
    return request


def _paginate(items, total_items: int, page: int, size: int) -> PaginatedWithdrawalRequests:
    total_pages = math.ceil(total_items / size) if total_items > 0 else 1
    return PaginatedWithdrawalRequests(
        total_items=total_items,
        total_pages=total_pages,
        current_page=page,
        size=size,
        items=items,
    )


def get_user_requests(db: Session, user: User, page: int, size: int) -> PaginatedWithdrawalRequests:
    skip = (page - 1) * size
    items = crud_withdrawal.get_user_withdrawal_requests(db, user_id=user.id, skip=skip, limit=size)
    return _paginate(items, crud_withdrawal.count_user_withdrawal_requests(db, user_id=user.id), page, size)


def get_all_requests(db: Session, page: int, size: int, status_filter: str | None = None) -> PaginatedWithdrawalRequests:
    skip = (page - 1) * size
    items = crud_withdrawal.get_withdrawal_requests(db, status=status_filter, skip=skip, limit=size)
    return _paginate(items, crud_withdrawal.count_withdrawal_requests(db, status=status_filter), page, size)
