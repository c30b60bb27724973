# app/crud/commission.py
from typing import List
from sqlalchemy.orm import Session

from app.models.commission import CommissionSettings


def get_current_settings(db: Session) -> CommissionSettings | None:
    """Действующие ставки: is_current, самые свежие по effective_at."""
    return db.query(CommissionSettings).filter(
        CommissionSettings.is_current.is_(True)
    ).order_by(CommissionSettings.effective_at.desc(), CommissionSettings.id.desc()).first()

def create_settings(db: Session, **rates) -> CommissionSettings:
    """
    Добавляет новую версию ставок и снимает флаг is_current со старых.
    Требует внешнего вызова db.commit().
    """
    db.query(CommissionSettings).filter(
        CommissionSettings.is_current.is_(True)
    ).update({"is_current": False}, synchronize_session=False)
    new_settings = CommissionSettings(is_current=True, **rates)
    db.add(new_settings)
    db.flush()
    return new_settings

def get_settings_history(db: Session, skip: int = 0, limit: int = 20) -> List[CommissionSettings]:
    return db.query(CommissionSettings).order_by(
        CommissionSettings.effective_at.desc(), CommissionSettings.id.desc()
    ).offset(skip).limit(limit).all()

def count_settings_history(db: Session) -> int:
    return db.query(CommissionSettings).count()
