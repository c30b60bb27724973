# run_tasks_manually.py
import logging
import sys
import os

# Корень проекта в sys.path для запуска из папки scripts
sys.path.append(os.getcwd())

from app.core.logging_config import setup_logging
from app.db.base import Base  # noqa: F401  (регистрирует все модели)
from app.services.notification_cleanup import cleanup_old_notifications_task
from app.services.qrcode import expire_qr_codes_task

logger = logging.getLogger(__name__)


def main():
    """
    Поочередно запускает все фоновые задачи вне планировщика.
    """
    setup_logging()
    print("--- Manual Task Runner ---")

    print("\n[1/2] Running: cleanup_old_notifications_task...")
    cleanup_old_notifications_task()
    print("Done.")

    print("\n[2/2] Running: expire_qr_codes_task...")
    expire_qr_codes_task()
    print("Done.")

    print("\n--- All tasks finished ---")


if __name__ == "__main__":
    main()
