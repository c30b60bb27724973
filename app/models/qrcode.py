# app/models/qrcode.py
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime, Numeric, func
from app.db.session import Base


class QRCode(Base):
    """Одноразовый платежный QR-код, выпущенный магазином."""
    __tablename__ = "qr_codes"

    id = Column(Integer, primary_key=True, index=True)
    # Пользователь-магазин, выпустивший код
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    code = Column(String, nullable=False, unique=True, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(String, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used = Column(Boolean, default=False, nullable=False, server_default='false')
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
