# app/models/ledger.py
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Numeric, UniqueConstraint, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship


from app.db.session import Base


class LedgerEntryKind:
    CASHBACK = "cashback"
    CASHBACK_REVERSAL = "cashback_reversal"
    REFERRAL_SIGNUP = "referral_signup"
    REFERRAL_SALE = "referral_sale"
    REFERRAL_REVERSAL = "referral_reversal"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    WITHDRAWAL = "withdrawal"

    # Записи, которые считаются "заработком" (total_earned)
    EARNINGS = (CASHBACK, REFERRAL_SIGNUP, REFERRAL_SALE)
    REFERRAL_EARNINGS = (REFERRAL_SIGNUP, REFERRAL_SALE)


class LedgerEntry(Base):
    """
    Неизменяемая запись движения средств. Баланс пользователя - SUM(delta)
    по всем его записям; записи никогда не обновляются и не удаляются.
    """
    __tablename__ = "ledger_entries"
    __table_args__ = (
        # Естественный ключ: одно начисление одного вида на одну сущность
        # (кешбэк на продажу, бонус на продажу, списание на заявку вывода...)
        UniqueConstraint("user_id", "kind", "reference_id", name="uq_ledger_entries_user_kind_reference"),
        Index("ix_ledger_entries_user_created", "user_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    # Положительное число - начисление, отрицательное - списание
    delta = Column(Numeric(12, 2), nullable=False)

    # см. LedgerEntryKind
    kind = Column(String, nullable=False)

    # ID продажи, перевода, реферальной связи или заявки на вывод
    reference_id = Column(Integer, nullable=True)
    description = Column(String, nullable=True)

    user = relationship("User")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
