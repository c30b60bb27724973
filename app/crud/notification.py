# app/crud/notification.py
import json
from sqlalchemy.orm import Session
from sqlalchemy import update, or_
from app.models.notification import Notification
from typing import List
from datetime import datetime, timedelta, timezone

def create_notification(
    db: Session,
    user_id: int,
    type: str,
    title: str,
    message: str | None = None,
    related_entity_id: str | None = None,
    data: dict | None = None,
) -> Notification:
    """Создает новое уведомление для пользователя."""
    db_notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        related_entity_id=related_entity_id,
        data=json.dumps(data, default=str) if data is not None else None,
    )
    db.add(db_notification)
    db.commit()
    db.refresh(db_notification)
    return db_notification

def get_notifications(
    db: Session,
    user_id: int,
    skip: int = 0,
    limit: int = 20,
    unread_only: bool = False
) -> List[Notification]:
    """Получает пагинированный список уведомлений."""
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).offset(skip).limit(limit).all()

def count_notifications(db: Session, user_id: int, unread_only: bool = False) -> int:
    """Считает уведомления с фильтром."""
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return query.count()

def mark_notification_as_read(db: Session, user_id: int, notification_id: int) -> Notification | None:
    """Помечает конкретное уведомление как прочитанное."""
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user_id
    ).first()
    if not notification:
        return None
    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification

def mark_all_notifications_as_read(db: Session, user_id: int) -> int:
    """Помечает все уведомления пользователя как прочитанные."""
    stmt = update(Notification).where(
        Notification.user_id == user_id,
        Notification.is_read.is_(False)
    ).values(is_read=True)
    result = db.execute(stmt)
    db.commit()
    return result.rowcount

def delete_notification(db: Session, user_id: int, notification_id: int) -> bool:
    deleted = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user_id
    ).delete(synchronize_session=False)
    db.commit()
    return deleted > 0

def smart_delete_old_notifications(
    db: Session,
    read_older_than_days: int,
    any_older_than_days: int
) -> int:
    """
    Удаляет прочитанные уведомления старше read_older_than_days и любые
    старше any_older_than_days. Возвращает число удаленных строк.
    """
    now = datetime.now(timezone.utc)
    read_threshold = now - timedelta(days=read_older_than_days)
    any_threshold = now - timedelta(days=any_older_than_days)

    condition_read_and_old = (
        Notification.is_read.is_(True) & (Notification.created_at < read_threshold)
    )
    condition_any_very_old = (
        Notification.created_at < any_threshold
    )

    result = db.query(Notification).filter(
        or_(condition_read_and_old, condition_any_very_old)
    ).delete(synchronize_session=False)

    db.commit()
    return result
