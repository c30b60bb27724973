# app/schemas/qrcode.py
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field

from app.schemas.transaction import PaymentMethodLiteral


class QRCodeCreate(BaseModel):
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    description: str | None = Field(default=None, max_length=255)


class QRCode(BaseModel):
    id: int
    code: str
    amount: Decimal
    description: str | None = None
    expires_at: datetime
    used: bool

    class Config:
        from_attributes = True


class QRPayRequest(BaseModel):
    code: str = Field(..., min_length=1)
    payment_method: PaymentMethodLiteral = "cash"
