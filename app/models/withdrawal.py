# app/models/withdrawal.py
from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Numeric, func
from sqlalchemy.orm import relationship
from app.db.session import Base


class WithdrawalStatus:
    PENDING = "pending"
    COMPLETED = "completed"
    REJECTED = "rejected"


class WithdrawalRequest(Base):
    __tablename__ = "withdrawal_requests"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    merchant_id = Column(Integer, ForeignKey("merchants.id"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)

    # 'pending' -> 'completed' | 'rejected', ровно один переход
    status = Column(String, nullable=False, default=WithdrawalStatus.PENDING, index=True)
    payment_method = Column(String, nullable=False)

    # Банковские реквизиты
    full_name = Column(String, nullable=False)
    store_name = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    email = Column(String, nullable=False)
    bank_name = Column(String, nullable=False)
    agency = Column(String, nullable=False)
    account = Column(String, nullable=False)

    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    processed_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    user = relationship("User", foreign_keys=[user_id])
    merchant = relationship("Merchant")
