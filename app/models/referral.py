# app/models/referral.py
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Numeric, Index, func, text
from sqlalchemy.orm import relationship
from app.db.session import Base


class ReferralStatus:
    PENDING = "pending"
    ACTIVE = "active"
    REVERSED = "reversed"


class ReferralKind:
    # Связь, созданная при регистрации по коду приглашения (фиксированный бонус)
    SIGNUP = "signup"
    # Бонус с конкретной продажи приглашенного (процент от суммы)
    SALE = "sale"


class Referral(Base):
    __tablename__ = "referrals"
    __table_args__ = (
        # Одна регистрационная связь на пару (кто пригласил, кого пригласили)
        Index(
            "uq_referrals_signup_pair", "referrer_id", "referred_id", unique=True,
            postgresql_where=text("kind = 'signup'"),
            sqlite_where=text("kind = 'signup'"),
        ),
        Index("ix_referrals_referred_created", "referred_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # ID того, кто пригласил
    referrer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # ID того, кого пригласили
    referred_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    bonus = Column(Numeric(12, 2), nullable=False)
    kind = Column(String, nullable=False, default=ReferralKind.SIGNUP, server_default=ReferralKind.SIGNUP)
    status = Column(String, default=ReferralStatus.PENDING, nullable=False)

    # Продажа, за которую начислен бонус. Не более одного бонуса на продажу.
    transaction_id = Column(Integer, ForeignKey("transactions.id", ondelete="SET NULL"), nullable=True, unique=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    referrer = relationship("User", foreign_keys=[referrer_id], back_populates="referrals")
    referred = relationship("User", foreign_keys=[referred_id], back_populates="referrer_links")
