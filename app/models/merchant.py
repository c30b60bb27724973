# app/models/merchant.py
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime, Numeric, func
from sqlalchemy.orm import relationship
from app.db.session import Base


class Merchant(Base):
    __tablename__ = "merchants"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)

    store_name = Column(String, nullable=False)
    category = Column(String, nullable=False)
    address = Column(String, nullable=True)
    city = Column(String, nullable=True)
    state = Column(String, nullable=True)
    country = Column(String, nullable=True)
    logo = Column(String, nullable=True)

    # Комиссия магазина в процентах, перекрывает системную ставку
    commission_rate = Column(Numeric(5, 2), nullable=False, default=2.0, server_default="2.0")
    # Пока магазин не одобрен, он не может проводить продажи
    approved = Column(Boolean, default=False, nullable=False, server_default='false')

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="merchant")
