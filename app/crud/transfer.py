# app/crud/transfer.py
from decimal import Decimal
from typing import List
from sqlalchemy.orm import Session
from sqlalchemy import or_

from app.models.transfer import Transfer


def create_transfer(
    db: Session,
    from_user_id: int,
    to_user_id: int,
    amount: Decimal,
    description: str | None,
    status: str = "completed",
    type: str = "transfer",
) -> Transfer:
    """Создает перевод и получает его ID. Требует внешнего вызова db.commit()."""
    transfer = Transfer(
        from_user_id=from_user_id,
        to_user_id=to_user_id,
        amount=amount,
        description=description,
        status=status,
        type=type,
    )
    db.add(transfer)
    db.flush()
    return transfer

def get_user_transfers(db: Session, user_id: int, skip: int = 0, limit: int = 20) -> List[Transfer]:
    """Отправленные и полученные переводы пользователя (от новых к старым)."""
    return db.query(Transfer).filter(
        or_(Transfer.from_user_id == user_id, Transfer.to_user_id == user_id)
    ).order_by(Transfer.created_at.desc(), Transfer.id.desc()).offset(skip).limit(limit).all()

def count_user_transfers(db: Session, user_id: int) -> int:
    return db.query(Transfer).filter(
        or_(Transfer.from_user_id == user_id, Transfer.to_user_id == user_id)
    ).count()
