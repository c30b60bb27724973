# app/models/user.py

from sqlalchemy import Column, Integer, String, DateTime, func
from sqlalchemy.orm import relationship
from .referral import Referral
from app.db.session import Base


class UserType:
    CLIENT = "client"
    MERCHANT = "merchant"
    ADMIN = "admin"


class UserStatus:
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"
    REJECTED = "rejected"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    username = Column(String, unique=True, nullable=True)
    email = Column(String, unique=True, index=True, nullable=False)
    # scrypt-хеш в формате "<hash>.<salt>"
    password = Column(String, nullable=False)
    phone = Column(String, nullable=True, index=True)
    country = Column(String, nullable=True)

    # 'client', 'merchant', 'admin'
    type = Column(String, nullable=False, index=True)
    # 'active', 'inactive', 'pending', 'rejected'
    status = Column(String, default=UserStatus.ACTIVE, nullable=False, server_default=UserStatus.ACTIVE)

    # CL0001 для клиентов, LJ0001 для магазинов (lojista)
    invitation_code = Column(String, unique=True, index=True, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)

    merchant = relationship("Merchant", back_populates="user", uselist=False)
    # Кто пригласил этого пользователя
    referrer_links = relationship("Referral", foreign_keys="Referral.referred_id", back_populates="referred")
    # Кого пригласил этот пользователь
    referrals = relationship("Referral", foreign_keys="Referral.referrer_id", back_populates="referrer")
