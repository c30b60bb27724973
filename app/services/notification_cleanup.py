# app/services/notification_cleanup.py
import logging
from app.core.config import settings
from app.dependencies import get_db_context
from app.crud import notification as crud_notification

logger = logging.getLogger(__name__)


def cleanup_old_notifications_task():
    """
    Фоновая задача: удаляет прочитанные уведомления старше
    NOTIFICATION_READ_RETENTION_DAYS и любые старше NOTIFICATION_RETENTION_DAYS.
    """
    logger.info("--- Starting scheduled job: Notifications Retention Cleanup ---")
    with get_db_context() as db:
        try:
            deleted_count = crud_notification.smart_delete_old_notifications(
                db,
                read_older_than_days=settings.NOTIFICATION_READ_RETENTION_DAYS,
                any_older_than_days=settings.NOTIFICATION_RETENTION_DAYS,
            )
            logger.info(
                f"Notifications cleanup removed {deleted_count} rows "
                f"(read > {settings.NOTIFICATION_READ_RETENTION_DAYS}d, any > {settings.NOTIFICATION_RETENTION_DAYS}d)."
            )
        except Exception:
            logger.error("An error occurred during notification cleanup task", exc_info=True)
            db.rollback()
    logger.info("--- Finished scheduled job: Notifications Retention Cleanup ---")
