# app/crud/ledger.py

from decimal import Decimal
from typing import List
from sqlalchemy.orm import Session
from sqlalchemy import func

from app.models.ledger import LedgerEntry, LedgerEntryKind

# --- Базовые CRUD-операции ---

def create_entry(
    db: Session,
    user_id: int,
    delta: Decimal,
    kind: str,
    reference_id: int | None = None,
    description: str | None = None,
) -> LedgerEntry:
    """
    Создает запись леджера и добавляет ее в сессию.
    Требует внешнего вызова db.commit().
    """
    entry = LedgerEntry(
        user_id=user_id,
        delta=delta,
        kind=kind,
        reference_id=reference_id,
        description=description,
    )
    db.add(entry)
    return entry

def get_entry(db: Session, user_id: int, kind: str, reference_id: int) -> LedgerEntry | None:
    """Находит запись по естественному ключу (пользователь, вид, сущность)."""
    return db.query(LedgerEntry).filter_by(
        user_id=user_id, kind=kind, reference_id=reference_id
    ).first()

def get_user_entries(
    db: Session,
    user_id: int,
    skip: int = 0,
    limit: int = 20
) -> List[LedgerEntry]:
    """Пагинированный список записей пользователя (от новых к старым)."""
    return db.query(LedgerEntry).filter(
        LedgerEntry.user_id == user_id
    ).order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc()).offset(skip).limit(limit).all()

def count_user_entries(db: Session, user_id: int) -> int:
    return db.query(LedgerEntry).filter(LedgerEntry.user_id == user_id).count()

# --- Расчетные CRUD-функции ---
# Возвращают "сырое" значение SUM; парсинг и проверка - в сервисе леджера.

def sum_user_deltas(db: Session, user_id: int):
    """Текущий баланс пользователя как сумма ВСЕХ его записей."""
    return db.query(func.coalesce(func.sum(LedgerEntry.delta), 0)).filter(
        LedgerEntry.user_id == user_id
    ).scalar()

def sum_user_deltas_by_kinds(db: Session, user_id: int, kinds: tuple):
    return db.query(func.coalesce(func.sum(LedgerEntry.delta), 0)).filter(
        LedgerEntry.user_id == user_id,
        LedgerEntry.kind.in_(kinds)
    ).scalar()

def sum_total_earned(db: Session, user_id: int):
    """Общий заработок: кешбэк и реферальные бонусы (без учета сторно)."""
    return sum_user_deltas_by_kinds(db, user_id, LedgerEntryKind.EARNINGS)

def sum_referral_earnings(db: Session, user_id: int):
    return sum_user_deltas_by_kinds(db, user_id, LedgerEntryKind.REFERRAL_EARNINGS)
