# app/schemas/transfer.py
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, EmailStr, Field, model_validator

from app.schemas.common import PaginatedResponse


class TransferCreate(BaseModel):
    # Получатель указывается одним из способов
    recipient_id: int | None = None
    recipient_email: EmailStr | None = None
    recipient_phone: str | None = None
    amount: Decimal = Field(..., decimal_places=2)
    description: str | None = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def check_recipient(self):
        if not (self.recipient_id or self.recipient_email or self.recipient_phone):
            raise ValueError("Recipient is required (id, email or phone)")
        return self


class Transfer(BaseModel):
    id: int
    from_user_id: int
    to_user_id: int
    amount: Decimal
    description: str | None = None
    status: str
    type: str
    created_at: datetime

    class Config:
        from_attributes = True


class PaginatedTransfers(PaginatedResponse[Transfer]):
    pass
