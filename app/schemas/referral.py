# app/schemas/referral.py
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel
from typing import List


class Referral(BaseModel):
    id: int
    referrer_id: int
    referred_id: int
    bonus: Decimal
    kind: str
    status: str
    transaction_id: int | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class ReferralInfo(BaseModel):
    invitation_code: str | None
    referral_link: str | None
    total_referrals: int     # Сколько человек зарегистрировалось по коду
    active_referrals: int
    total_earned: Decimal    # Сколько всего заработано на бонусах
    recent: List[Referral]
