# app/models/transfer.py
from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Numeric, func
from sqlalchemy.orm import relationship
from app.db.session import Base


class Transfer(Base):
    """Перевод между клиентами. После создания не изменяется."""
    __tablename__ = "transfers"

    id = Column(Integer, primary_key=True, index=True)
    from_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    to_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="completed")
    type = Column(String, nullable=False, default="transfer")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    sender = relationship("User", foreign_keys=[from_user_id])
    recipient = relationship("User", foreign_keys=[to_user_id])
