# app/services/transfer.py

import logging
import math
from decimal import Decimal
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.crud import transfer as crud_transfer
from app.crud import user as crud_user
from app.models.ledger import LedgerEntryKind
from app.models.transfer import Transfer
from app.models.user import User, UserStatus, UserType
from app.schemas.transfer import PaginatedTransfers, TransferCreate
from app.services import ledger as ledger_service
from app.services import notification as notification_service
from app.utils.money import ZERO, format_money, quantize

logger = logging.getLogger(__name__)


def _ensure_client(recipient: User) -> None:
    # Переводы возможны только между клиентскими счетами
    if recipient.type != UserType.CLIENT:
        logger.warning(f"Transfer rejected: recipient {recipient.id} is a {recipient.type}.")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Recipient must be a client")


def _resolve_recipient(db: Session, transfer_data: TransferCreate) -> User:
    if transfer_data.recipient_id is not None:
        recipient = crud_user.get_user_by_id(db, transfer_data.recipient_id)
    else:
        recipient = crud_user.get_client_by_contact(
            db, email=transfer_data.recipient_email, phone=transfer_data.recipient_phone
        )
    if not recipient:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recipient not found")
    _ensure_client(recipient)
    if recipient.status != UserStatus.ACTIVE:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Recipient account is not active")
    return recipient


def transfer(
    db: Session,
    sender: User,
    recipient_id: int,
    amount: Decimal,
    description: str | None = None,
) -> Transfer:
    """
    Перевод между клиентами. Проверка баланса и запись выполняются под
    блокировкой счета отправителя, поэтому два параллельных перевода
    не могут вместе потратить больше баланса.
    """
    if recipient_id == sender.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot transfer to yourself")

    if amount is None or not amount.is_finite() or amount <= ZERO:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Transfer amount must be positive")
    amount = quantize(amount)
    if amount < settings.MIN_TRANSFER_AMOUNT:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Minimum transfer amount is {format_money(settings.MIN_TRANSFER_AMOUNT)}"
        )

    recipient = crud_user.get_user_by_id(db, recipient_id)
    if not recipient:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recipient not found")
    _ensure_client(recipient)

    # Блокировка счета отправителя держится до commit
    balance = ledger_service.get_locked_balance(db, sender.id)
    if amount > balance:
        logger.warning(f"Transfer rejected: user {sender.id} has {balance}, tried to send {amount}.")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Insufficient balance")

    transfer_row = crud_transfer.create_transfer(
        db,
        from_user_id=sender.id,
        to_user_id=recipient.id,
        amount=amount,
        description=description,
    )
    ledger_service.debit(
        db,
        user_id=sender.id,
        amount=amount,
        kind=LedgerEntryKind.TRANSFER_OUT,
        reference_id=transfer_row.id,
        description=f"Transfer #{transfer_row.id} to user #{recipient.id}",
    )
    ledger_service.credit(
        db,
        user_id=recipient.id,
        amount=amount,
        kind=LedgerEntryKind.TRANSFER_IN,
        reference_id=transfer_row.id,
        description=f"Transfer #{transfer_row.id} from user #{sender.id}",
    )
    db.commit()
    db.refresh(transfer_row)
    logger.info(f"Transfer {transfer_row.id} completed: {sender.id} -> {recipient.id}, amount {amount}.")

    notification_service.create_transfer_sent_notification(db, transfer_row, recipient.name)
    notification_service.create_transfer_received_notification(db, transfer_row, sender.name)
    return transfer_row


def create_transfer(db: Session, sender: User, transfer_data: TransferCreate) -> Transfer:
    """Перевод по данным из запроса: получатель по ID, email или телефону."""
    recipient = _resolve_recipient(db, transfer_data)
    try:
        return transfer(db, sender, recipient.id, transfer_data.amount, transfer_data.description)
    except HTTPException:
        db.rollback()
        raise


def get_paginated_transfers(db: Session, user: User, page: int, size: int) -> PaginatedTransfers:
    skip = (page - 1) * size
    transfers = crud_transfer.get_user_transfers(db, user_id=user.id, skip=skip, limit=size)
    total_items = crud_transfer.count_user_transfers(db, user_id=user.id)
    total_pages = math.ceil(total_items / size) if total_items > 0 else 1
    return PaginatedTransfers(
        total_items=total_items,
        total_pages=total_pages,
        current_page=page,
        size=size,
        items=transfers,
    )
