# app/services/notification_api.py
import logging
import math
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.crud import notification as crud_notification
from app.models.notification import Notification
from app.models.user import User
from app.schemas.notification import PaginatedNotifications

logger = logging.getLogger(__name__)


def get_paginated(db: Session, user: User, page: int, size: int, unread_only: bool) -> PaginatedNotifications:
    """Собирает пагинированный ответ для уведомлений."""
    skip = (page - 1) * size

    notifications = crud_notification.get_notifications(
        db, user_id=user.id, skip=skip, limit=size, unread_only=unread_only
    )
    total_items = crud_notification.count_notifications(db, user_id=user.id, unread_only=unread_only)
    total_pages = math.ceil(total_items / size) if total_items > 0 else 1

    return PaginatedNotifications(
        total_items=total_items,
        total_pages=total_pages,
        current_page=page,
        size=size,
        items=notifications
    )

def get_unread_count(db: Session, user: User) -> int:
    return crud_notification.count_notifications(db, user_id=user.id, unread_only=True)

def mark_as_read(db: Session, user: User, notification_id: int) -> Notification:
    notification = crud_notification.mark_notification_as_read(db, user_id=user.id, notification_id=notification_id)
    if not notification:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return notification

def mark_all_as_read(db: Session, user: User) -> int:
    updated = crud_notification.mark_all_notifications_as_read(db, user_id=user.id)
    logger.info(f"Marked {updated} notifications as read for user {user.id}.")
    return updated

def delete(db: Session, user: User, notification_id: int) -> None:
    if not crud_notification.delete_notification(db, user_id=user.id, notification_id=notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
