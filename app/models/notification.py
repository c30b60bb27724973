# app/models/notification.py
from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, func, Boolean
from app.db.session import Base
from sqlalchemy.orm import relationship


class NotificationType:
    TRANSACTION = "transaction"
    TRANSFER = "transfer"
    REFERRAL = "referral"
    WITHDRAWAL = "withdrawal"
    SYSTEM = "system"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Тип уведомления: 'transaction', 'transfer', 'referral', 'withdrawal', 'system'
    type = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=True)

    # ID связанной сущности (продажи, перевода, заявки на вывод)
    related_entity_id = Column(String, nullable=True)
    # Дополнительные данные в JSON
    data = Column(Text, nullable=True)

    is_read = Column(Boolean, default=False, nullable=False, server_default='false')
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    user = relationship("User")
