# app/crud/referral.py
from decimal import Decimal
from sqlalchemy.orm import Session
from app.models.referral import Referral, ReferralKind, ReferralStatus

def create_referral(
    db: Session,
    referrer_id: int,
    referred_id: int,
    bonus: Decimal,
    kind: str = ReferralKind.SIGNUP,
    status: str = ReferralStatus.ACTIVE,
    transaction_id: int | None = None,
) -> Referral:
    """Создает реферальную запись. Требует внешнего вызова db.commit()."""
    db_referral = Referral(
        referrer_id=referrer_id,
        referred_id=referred_id,
        bonus=bonus,
        kind=kind,
        status=status,
        transaction_id=transaction_id,
    )
    db.add(db_referral)
    db.flush()
    return db_referral

def get_signup_referral(db: Session, referrer_id: int, referred_id: int) -> Referral | None:
    """Находит регистрационную связь для пары пользователей."""
    return db.query(Referral).filter(
        Referral.referrer_id == referrer_id,
        Referral.referred_id == referred_id,
        Referral.kind == ReferralKind.SIGNUP
    ).first()

def get_referral_by_transaction(db: Session, transaction_id: int) -> Referral | None:
    return db.query(Referral).filter(Referral.transaction_id == transaction_id).first()

def get_latest_active_referral_for(db: Session, referred_id: int) -> Referral | None:
    """Самая свежая активная связь приглашенного пользователя (индексированный ORDER BY)."""
    return db.query(Referral).filter(
        Referral.referred_id == referred_id,
        Referral.status == ReferralStatus.ACTIVE
    ).order_by(Referral.created_at.desc(), Referral.id.desc()).first()

def count_referred_users(db: Session, referrer_id: int, status: str | None = None) -> int:
    """Количество уникальных приглашенных по регистрационным связям."""
    query = db.query(Referral).filter(
        Referral.referrer_id == referrer_id,
        Referral.kind == ReferralKind.SIGNUP
    )
    if status:
        query = query.filter(Referral.status == status)
    return query.count()

def get_referrals_by_referrer(db: Session, referrer_id: int, skip: int = 0, limit: int = 20) -> list[Referral]:
    return db.query(Referral).filter(
        Referral.referrer_id == referrer_id
    ).order_by(Referral.created_at.desc(), Referral.id.desc()).offset(skip).limit(limit).all()

def detach_from_transaction(db: Session, transaction_id: int) -> None:
    """Отвязывает бонусные записи от удаляемой продажи (история бонуса остается)."""
    db.query(Referral).filter(Referral.transaction_id == transaction_id).update(
        {"transaction_id": None}, synchronize_session=False
    )
