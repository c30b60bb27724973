# app/schemas/withdrawal.py
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Literal

from app.schemas.common import PaginatedResponse


class WithdrawalRequestCreate(BaseModel):
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    full_name: str
    store_name: str
    phone: str
    email: EmailStr
    bank_name: str
    agency: str
    account: str
    payment_method: Literal["bank", "zelle"]

    @field_validator("full_name", "store_name", "phone", "bank_name", "agency", "account")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field cannot be empty")
        return v


class WithdrawalProcess(BaseModel):
    status: Literal["completed", "rejected"]
    notes: str | None = Field(default=None, max_length=1000)


class WithdrawalRequest(BaseModel):
    id: int
    user_id: int
    merchant_id: int
    amount: Decimal
    status: str
    payment_method: str
    full_name: str
    store_name: str
    phone: str
    email: str
    bank_name: str
    agency: str
    account: str
    notes: str | None = None
    created_at: datetime
    processed_at: datetime | None = None
    processed_by: int | None = None

    class Config:
        from_attributes = True


class PaginatedWithdrawalRequests(PaginatedResponse[WithdrawalRequest]):
    pass
