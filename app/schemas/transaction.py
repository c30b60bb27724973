# app/schemas/transaction.py
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field, model_validator
from typing import List, Literal

from app.schemas.common import PaginatedResponse

PaymentMethodLiteral = Literal["cash", "credit_card", "debit_card", "cashback", "pix"]


class SaleItem(BaseModel):
    product_id: int | None = None
    product_name: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    price: Decimal = Field(..., ge=0, decimal_places=2)


class SaleCreate(BaseModel):
    customer_id: int
    items: List[SaleItem] = []
    # Режим "быстрой продажи": сумма без позиций
    manual_amount: Decimal | None = Field(default=None, gt=0, decimal_places=2)
    payment_method: PaymentMethodLiteral
    referrer_id: int | None = None
    description: str | None = None
    notes: str | None = None
    status: Literal["pending", "completed"] = "completed"
    idempotency_key: str | None = Field(default=None, max_length=128)

    @model_validator(mode="after")
    def check_amount_source(self):
        if not self.items and self.manual_amount is None:
            raise ValueError("Either items or manual_amount must be provided")
        return self


class SaleStatusUpdate(BaseModel):
    status: Literal["pending", "completed", "cancelled", "refunded"]


class SaleUpdate(BaseModel):
    notes: str | None = None
    payment_method: PaymentMethodLiteral | None = None


class TransactionItem(BaseModel):
    id: int
    product_id: int | None = None
    product_name: str
    quantity: int
    price: Decimal

    class Config:
        from_attributes = True


class Distribution(BaseModel):
    """Разбивка суммы продажи по получателям."""
    cashback: Decimal
    referral_bonus: Decimal
    merchant_commission: Decimal
    platform_fee: Decimal
    total: Decimal


class Transaction(BaseModel):
    id: int
    user_id: int
    merchant_id: int
    amount: Decimal
    cashback_amount: Decimal
    manual_amount: Decimal | None = None
    status: str
    payment_method: str
    description: str | None = None
    notes: str | None = None
    idempotency_key: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    items: List[TransactionItem] = []
    referrer_id: int | None = None
    distribution: Distribution | None = None

    class Config:
        from_attributes = True


class PaginatedTransactions(PaginatedResponse[Transaction]):
    pass
