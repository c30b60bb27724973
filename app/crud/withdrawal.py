# app/crud/withdrawal.py
from typing import List
from sqlalchemy.orm import Session
from sqlalchemy import func

from app.models.withdrawal import WithdrawalRequest, WithdrawalStatus


def create_withdrawal_request(db: Session, **fields) -> WithdrawalRequest:
    """Создает заявку на вывод. Требует внешнего вызова db.commit()."""
    request = WithdrawalRequest(status=WithdrawalStatus.PENDING, **fields)
    db.add(request)
    db.flush()
    return request

def get_withdrawal_request_for_update(db: Session, request_id: int) -> WithdrawalRequest | None:
    return db.query(WithdrawalRequest).filter(WithdrawalRequest.id == request_id).with_for_update().first()

def sum_pending_amount(db: Session, user_id: int, exclude_id: int | None = None):
    """Сумма еще не обработанных заявок пользователя."""
    query = db.query(func.coalesce(func.sum(WithdrawalRequest.amount), 0)).filter(
        WithdrawalRequest.user_id == user_id,
        WithdrawalRequest.status == WithdrawalStatus.PENDING
    )
    if exclude_id is not None:
        query = query.filter(WithdrawalRequest.id != exclude_id)
    return query.scalar()

def get_user_withdrawal_requests(db: Session, user_id: int, skip: int = 0, limit: int = 20) -> List[WithdrawalRequest]:
    return db.query(WithdrawalRequest).filter(
        WithdrawalRequest.user_id == user_id
    ).order_by(WithdrawalRequest.created_at.desc(), WithdrawalRequest.id.desc()).offset(skip).limit(limit).all()

def count_user_withdrawal_requests(db: Session, user_id: int) -> int:
    return db.query(WithdrawalRequest).filter(WithdrawalRequest.user_id == user_id).count()

def get_withdrawal_requests(db: Session, status: str | None = None, skip: int = 0, limit: int = 20) -> List[WithdrawalRequest]:
    query = db.query(WithdrawalRequest)
    if status:
        query = query.filter(WithdrawalRequest.status == status)
    return query.order_by(WithdrawalRequest.created_at.desc(), WithdrawalRequest.id.desc()).offset(skip).limit(limit).all()

def count_withdrawal_requests(db: Session, status: str | None = None) -> int:
    query = db.query(WithdrawalRequest)
    if status:
        query = query.filter(WithdrawalRequest.status == status)
    return query.count()
