# app/schemas/ledger.py
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel

from app.schemas.common import PaginatedResponse


class LedgerEntry(BaseModel):
    id: int
    delta: Decimal
    kind: str
    reference_id: int | None = None
    description: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class Balance(BaseModel):
    balance: Decimal
    total_earned: Decimal
    # Суммы переводов за все время
    transferred_in: Decimal
    transferred_out: Decimal


class PaginatedLedgerEntries(PaginatedResponse[LedgerEntry]):
    pass
