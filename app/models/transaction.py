# app/models/transaction.py
from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Numeric, UniqueConstraint, Index, func
from sqlalchemy.orm import relationship
from app.db.session import Base


class TransactionStatus:
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class Transaction(Base):
    """Продажа: покупатель, магазин, сумма и начисленный кешбэк."""
    __tablename__ = "transactions"
    __table_args__ = (
        # Повтор запроса с тем же ключом от того же магазина не создает вторую продажу
        UniqueConstraint("merchant_id", "idempotency_key", name="uq_transactions_merchant_idempotency"),
        Index("ix_transactions_merchant_created", "merchant_id", "created_at"),
        Index("ix_transactions_user_created", "user_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    merchant_id = Column(Integer, ForeignKey("merchants.id"), nullable=False)

    amount = Column(Numeric(12, 2), nullable=False)
    cashback_amount = Column(Numeric(12, 2), nullable=False)
    # Сумма, введенная вручную (режим "быстрой продажи" без позиций)
    manual_amount = Column(Numeric(12, 2), nullable=True)

    # 'pending', 'completed', 'cancelled', 'refunded'
    status = Column(String, nullable=False, default=TransactionStatus.COMPLETED, index=True)
    payment_method = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    idempotency_key = Column(String, nullable=True)

    # Кто получит реферальный бонус с этой продажи (определяется при записи)
    referrer_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    items = relationship(
        "TransactionItem", back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="TransactionItem.id",
    )
    buyer = relationship("User", foreign_keys=[user_id])
    merchant = relationship("Merchant")


class TransactionItem(Base):
    __tablename__ = "transaction_items"

    id = Column(Integer, primary_key=True, index=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, nullable=True)
    product_name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    transaction = relationship("Transaction", back_populates="items")
