# app/schemas/user.py
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, EmailStr, Field, field_validator


class _RegisterBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: str | None = None
    country: str | None = None
    # Код приглашения (CL0001 / LJ0001), необязателен
    referral_code: str | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be empty")
        return v

    @field_validator("referral_code")
    @classmethod
    def empty_code_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


class ClientRegister(_RegisterBase):
    pass


class MerchantRegister(_RegisterBase):
    store_name: str = Field(..., min_length=1, max_length=255)
    category: str = Field(..., min_length=1)
    address: str | None = None
    city: str | None = None
    state: str | None = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


# Схема для ответа с токеном
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class User(BaseModel):
    id: int
    name: str
    username: str | None = None
    email: str
    phone: str | None = None
    country: str | None = None
    type: str
    status: str
    invitation_code: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class AuthResponse(Token):
    user: User


class InviteStore(BaseModel):
    store_name: str
    category: str
    logo: str | None = None


class InviteInfo(BaseModel):
    """Кто пригласил: ответ публичного эндпоинта /api/invite/{code}."""
    referrer_id: int
    referrer_name: str
    referrer_type: str
    invitation_code: str
    store: InviteStore | None = None
    commission_rate: Decimal | None = None
