# app/schemas/settings.py
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Optional

from app.schemas.common import PaginatedResponse


class CommissionRates(BaseModel):
    """Действующие ставки в процентах (min_withdrawal - в деньгах)."""
    platform_fee: Decimal
    merchant_commission: Decimal
    client_cashback: Decimal
    referral_bonus: Decimal
    max_cashback_bonus: Decimal
    min_withdrawal: Decimal


class CommissionSettings(CommissionRates):
    id: int
    is_current: bool
    effective_at: datetime | None = None
    updated_by: int | None = None

    class Config:
        from_attributes = True


class CommissionSettingsUpdate(BaseModel):
    """
    Схема для частичного обновления ставок.
    Все поля опциональны.
    """
    platform_fee: Optional[Decimal] = Field(default=None, ge=0, le=100)
    merchant_commission: Optional[Decimal] = Field(default=None, ge=0, le=100)
    client_cashback: Optional[Decimal] = Field(default=None, ge=0, le=100)
    referral_bonus: Optional[Decimal] = Field(default=None, ge=0, le=100)
    max_cashback_bonus: Optional[Decimal] = Field(default=None, ge=0, le=100)
    min_withdrawal: Optional[Decimal] = Field(default=None, ge=0)


class PaginatedCommissionSettings(PaginatedResponse[CommissionSettings]):
    pass
