# app/services/ledger.py

import logging
import math
from decimal import Decimal
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.crud import ledger as crud_ledger
from app.crud import user as crud_user
from app.models.ledger import LedgerEntry, LedgerEntryKind
from app.models.user import User
from app.schemas.ledger import Balance, PaginatedLedgerEntries
from app.utils.money import ZERO, parse_money, quantize

logger = logging.getLogger(__name__)


def get_balance(db: Session, user_id: int) -> Decimal:
    """Текущий баланс пользователя как сумма ВСЕХ его записей леджера."""
    return parse_money(crud_ledger.sum_user_deltas(db, user_id), field="balance")

def get_total_earned(db: Session, user_id: int) -> Decimal:
    return parse_money(crud_ledger.sum_total_earned(db, user_id), field="total_earned")

def get_referral_earnings(db: Session, user_id: int) -> Decimal:
    return parse_money(crud_ledger.sum_referral_earnings(db, user_id), field="referral_earnings")

def get_total_by_kind(db: Session, user_id: int, kind: str) -> Decimal:
    return parse_money(crud_ledger.sum_user_deltas_by_kinds(db, user_id, (kind,)), field=kind)

def get_locked_balance(db: Session, user_id: int) -> Decimal:
    """
    Блокирует строку пользователя (`SELECT ... FOR UPDATE`) и считает баланс.
    Блокировка держится до commit/rollback вызывающей стороны.
    """
    user = crud_user.lock_user(db, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return get_balance(db, user_id)


def credit(
    db: Session,
    user_id: int,
    amount: Decimal,
    kind: str,
    reference_id: int | None = None,
    description: str | None = None,
) -> LedgerEntry | None:
    """
    Начисляет сумму на баланс пользователя.
    Повторный вызов с тем же (пользователь, вид, сущность) не создает второй записи.
    Требует внешнего вызова db.commit().
    """
    amount = quantize(amount)
    if amount <= ZERO:
        logger.info(f"Skipping non-positive {kind} credit of {amount} for user {user_id} (ref {reference_id}).")
        return None

    if reference_id is not None:
        existing = crud_ledger.get_entry(db, user_id=user_id, kind=kind, reference_id=reference_id)
        if existing:
            logger.warning(
                f"Duplicate {kind} credit for user {user_id} (ref {reference_id}) ignored. "
                f"Existing entry ID: {existing.id}"
            )
            return existing

    entry = crud_ledger.create_entry(
        db, user_id=user_id, delta=amount, kind=kind,
        reference_id=reference_id, description=description
    )
    db.flush()
    logger.info(f"Credited {amount} ({kind}) to user {user_id}, ref {reference_id}. Entry ID: {entry.id}")
    return entry


def reverse(
    db: Session,
    user_id: int,
    amount: Decimal,
    kind: str = LedgerEntryKind.CASHBACK_REVERSAL,
    reference_id: int | None = None,
    description: str | None = None,
) -> LedgerEntry:
    """
    Сторнирует ранее начисленную сумму. Баланс не уходит ниже нуля:
    списывается min(amount, balance). Запись сторно создается всегда,
    даже если списывать уже нечего.
    """
    amount = quantize(amount)

    if reference_id is not None:
        existing = crud_ledger.get_entry(db, user_id=user_id, kind=kind, reference_id=reference_id)
        if existing:
            logger.warning(f"Reversal {kind} for user {user_id} (ref {reference_id}) already exists. Skipping.")
            return existing

    balance = get_locked_balance(db, user_id)
    to_reverse = min(amount, max(balance, ZERO))

    entry = crud_ledger.create_entry(
        db, user_id=user_id, delta=-to_reverse, kind=kind,
        reference_id=reference_id, description=description
    )
    db.flush()

    if to_reverse < amount:
        logger.warning(
            f"Reversal for user {user_id} clamped at zero: requested {amount}, "
            f"reversed {to_reverse} (balance was {balance})."
        )
    logger.info(f"Reversed {to_reverse} ({kind}) for user {user_id}, ref {reference_id}. Entry ID: {entry.id}")
    return entry


def debit(
    db: Session,
    user_id: int,
    amount: Decimal,
    kind: str,
    reference_id: int | None = None,
    description: str | None = None,
    reserved: Decimal = ZERO,
) -> LedgerEntry:
    """
    Списывает сумму, предварительно заблокировав счет пользователя.
    `reserved` - сумма, которую нельзя тратить (например, другие заявки на вывод).
    """
    amount = quantize(amount)
    if amount <= ZERO:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Amount must be positive")

    balance = get_locked_balance(db, user_id)
    available = balance - reserved
    if amount > available:
        logger.warning(
            f"Insufficient balance for user {user_id}: requested {amount}, available {available} "
            f"(balance {balance}, reserved {reserved})."
        )
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Insufficient balance")

    entry = crud_ledger.create_entry(
        db, user_id=user_id, delta=-amount, kind=kind,
        reference_id=reference_id, description=description
    )
    db.flush()
    logger.info(
        f"Debited {amount} ({kind}) from user {user_id}, ref {reference_id}. "
        f"Balance before: {balance}, after (uncommitted): {balance - amount}"
    )
    return entry


def get_history(db: Session, user_id: int, page: int, size: int) -> PaginatedLedgerEntries:
    """История движений по счету (от новых к старым)."""
    skip = (page - 1) * size
    entries = crud_ledger.get_user_entries(db, user_id=user_id, skip=skip, limit=size)
    total_items = crud_ledger.count_user_entries(db, user_id=user_id)
    total_pages = math.ceil(total_items / size) if total_items > 0 else 1
    return PaginatedLedgerEntries(
        total_items=total_items,
        total_pages=total_pages,
        current_page=page,
        size=size,
        items=entries,
    )


def get_balance_summary(db: Session, user: User) -> Balance:
    return Balance(
        balance=get_balance(db, user.id),
        total_earned=get_total_earned(db, user.id),
        transferred_in=get_total_by_kind(db, user.id, LedgerEntryKind.TRANSFER_IN),
        transferred_out=abs(get_total_by_kind(db, user.id, LedgerEntryKind.TRANSFER_OUT)),
    )
