# app/models/audit.py
from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, func
from app.db.session import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    # 'sale_recorded', 'sale_status_changed', 'withdrawal_processed', 'unhandled_error', ...
    action = Column(String, nullable=False, index=True)
    details = Column(Text, nullable=True)
    ip_address = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
