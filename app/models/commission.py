# app/models/commission.py
from sqlalchemy import Column, Integer, Boolean, ForeignKey, DateTime, Numeric, Index, func
from app.db.session import Base


class CommissionSettings(Base):
    """
    История ставок. Каждое изменение - новая строка; действующая помечена
    is_current и выбирается индексированным запросом по effective_at.
    """
    __tablename__ = "commission_settings"
    __table_args__ = (
        Index("ix_commission_settings_current_effective", "is_current", "effective_at"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # Все ставки - в процентах
    platform_fee = Column(Numeric(5, 2), nullable=False)
    merchant_commission = Column(Numeric(5, 2), nullable=False)
    client_cashback = Column(Numeric(5, 2), nullable=False)
    referral_bonus = Column(Numeric(5, 2), nullable=False)
    max_cashback_bonus = Column(Numeric(5, 2), nullable=False)
    # Денежная сумма
    min_withdrawal = Column(Numeric(12, 2), nullable=False)

    is_current = Column(Boolean, nullable=False, default=True, server_default='true')
    effective_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
