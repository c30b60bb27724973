# app/crud/audit.py
from sqlalchemy.orm import Session
from app.models.audit import AuditLog


def create_log(
    db: Session,
    action: str,
    user_id: int | None = None,
    details: str | None = None,
    ip_address: str | None = None,
) -> AuditLog:
    """
    Добавляет запись аудита в текущую транзакцию.
    Коммитится вместе с финансовой операцией, которую описывает.
    """
    log = AuditLog(user_id=user_id, action=action, details=details, ip_address=ip_address)
    db.add(log)
    return log
