# app/crud/qrcode.py
from datetime import datetime
from decimal import Decimal
from sqlalchemy.orm import Session

from app.models.qrcode import QRCode


def create_qr_code(
    db: Session,
    user_id: int,
    code: str,
    amount: Decimal,
    description: str | None,
    expires_at: datetime,
) -> QRCode:
    qr_code = QRCode(
        user_id=user_id,
        code=code,
        amount=amount,
        description=description,
        expires_at=expires_at,
    )
    db.add(qr_code)
    db.flush()
    return qr_code

def get_by_code(db: Session, code: str) -> QRCode | None:
    return db.query(QRCode).filter(QRCode.code == code).first()

def get_redeemable_for_update(db: Session, code: str, now: datetime) -> QRCode | None:
    """Неиспользованный и непросроченный код с блокировкой строки."""
    return db.query(QRCode).filter(
        QRCode.code == code,
        QRCode.used.is_(False),
        QRCode.expires_at > now
    ).with_for_update().first()

def delete_expired_unused(db: Session, older_than: datetime) -> int:
    """Удаляет неиспользованные коды, истекшие раньше указанного момента."""
    result = db.query(QRCode).filter(
        QRCode.used.is_(False),
        QRCode.expires_at < older_than
    ).delete(synchronize_session=False)
    db.commit()
    return result
