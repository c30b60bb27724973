# tests/test_notifications.py

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi import HTTPException

from app.crud import notification as crud_notification
from app.models.notification import Notification
from app.services import notification as notification_service
from app.services import notification_api
from app.services.notification_cleanup import cleanup_old_notifications_task


def test_referral_bonus_notification_text(db_session, referrer_user):
    notification_service.create_referral_bonus_notification(db_session, referrer_user.id, "Ana", Decimal("1.00"))

    notification = db_session.query(Notification).one()
    assert notification.user_id == referrer_user.id
    assert "$1.00" in notification.message


def test_notification_failure_is_swallowed_and_logged(db_session, referrer_user, mocker, caplog):
    mocker.patch("app.crud.notification.create_notification", side_effect=RuntimeError("db down"))

    # Сбой уведомления не должен ломать уже зафиксированную операцию
    notification_service.create_referral_bonus_notification(db_session, referrer_user.id, "Ana", Decimal("1.00"))

    assert "Failed to create" in caplog.text


def test_read_flow(db_session, client_user):
    for i in range(3):
        crud_notification.create_notification(db_session, client_user.id, "system", f"Hello {i}", data={"n": i})

    assert notification_api.get_unread_count(db_session, client_user) == 3

    first = crud_notification.get_notifications(db_session, client_user.id)[0]
    read = notification_api.mark_as_read(db_session, client_user, first.id)
    assert read.is_read is True
    assert notification_api.get_unread_count(db_session, client_user) == 2

    notification_api.mark_all_as_read(db_session, client_user)
    page = notification_api.get_paginated(db_session, client_user, page=1, size=10, unread_only=True)
    assert page.total_items == 0


def test_foreign_notification_is_404(db_session, client_user, other_client):
    notification = crud_notification.create_notification(db_session, other_client.id, "system", "Private")

    with pytest.raises(HTTPException) as exc_info:
        notification_api.mark_as_read(db_session, client_user, notification.id)
    assert exc_info.value.status_code == 404
    with pytest.raises(HTTPException):
        notification_api.delete(db_session, client_user, notification.id)


def test_cleanup_task_applies_retention(db_session, client_user):
    now = datetime.now(timezone.utc)
    fresh = crud_notification.create_notification(db_session, client_user.id, "system", "fresh")
    old_read = crud_notification.create_notification(db_session, client_user.id, "system", "old read")
    old_unread = crud_notification.create_notification(db_session, client_user.id, "system", "old unread")
    ancient = crud_notification.create_notification(db_session, client_user.id, "system", "ancient")

    old_read.is_read = True
    old_read.created_at = now - timedelta(days=40)
    old_unread.created_at = now - timedelta(days=40)
    ancient.created_at = now - timedelta(days=100)
    db_session.commit()

    cleanup_old_notifications_task()
    db_session.expire_all()

    titles = {n.title for n in db_session.query(Notification).all()}
    assert titles == {fresh.title, "old unread"}
