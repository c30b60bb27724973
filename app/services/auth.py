# app/services/auth.py

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone

from fastapi import HTTPException, status
from jose import jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.crud import merchant as crud_merchant
from app.crud import user as crud_user
from app.models.user import User, UserStatus, UserType
from app.schemas.user import AuthResponse, ClientRegister, LoginRequest, MerchantRegister
from app.schemas.user import User as UserSchema
from app.services import notification as notification_service
from app.services import referral as referral_service
from app.services import settings as settings_service

logger = logging.getLogger(__name__)

# Параметры scrypt
SCRYPT_N = 2 ** 14
SCRYPT_R = 8
SCRYPT_P = 1
SCRYPT_DKLEN = 64

USERNAME_SUFFIX = {
    UserType.CLIENT: "Cliente",
    UserType.MERCHANT: "Lojista",
}


def hash_password(password: str) -> str:
    """Соленый scrypt-хеш в формате "<hash>.<salt>"."""
    salt = secrets.token_hex(16)
    derived = hashlib.scrypt(
        password.encode(), salt=salt.encode(), n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P, dklen=SCRYPT_DKLEN
    )
    return f"{derived.hex()}.{salt}"


def verify_password(password: str, stored: str) -> bool:
    try:
        hashed, salt = stored.split(".", 1)
    except (AttributeError, ValueError):
        logger.warning("Stored password hash has an unexpected format.")
        return False
    derived = hashlib.scrypt(
        password.encode(), salt=salt.encode(), n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P, dklen=SCRYPT_DKLEN
    )
    return hmac.compare_digest(derived.hex(), hashed)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Создает JWT токен."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def _auth_response(user: User) -> AuthResponse:
    token = create_access_token({"sub": str(user.id), "type": user.type})
    return AuthResponse(access_token=token, user=UserSchema.model_validate(user))


def _create_account(db: Session, data: ClientRegister, user_type: str) -> User:
    """
    Общая часть регистрации: пользователь, username и код приглашения
    строятся из ID после flush. Требует внешнего вызова db.commit().
    """
    if crud_user.get_user_by_email(db, str(data.email)):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email is already registered")

    user = crud_user.create_user(
        db,
        name=data.name,
        email=str(data.email).lower(),
        password_hash=hash_password(data.password),
        user_type=user_type,
        phone=data.phone,
        country=data.country,
        status=UserStatus.ACTIVE,
    )
    user.username = f"{user.id}_{USERNAME_SUFFIX[user_type]}"
    user.invitation_code = referral_service.build_invitation_code(user)
    return user


def _commit_registration(db: Session, user: User) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Registration failed on a unique constraint (email or referral already taken).")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email is already registered")
    db.refresh(user)


def _notify_referrer(db: Session, referral, new_user: User) -> None:
    if referral is not None:
        notification_service.create_referral_bonus_notification(
            db, referral.referrer_id, new_user.name, referral.bonus, referral_id=referral.id
        )


def register_client(db: Session, data: ClientRegister) -> AuthResponse:
    user = _create_account(db, data, UserType.CLIENT)
    referral = referral_service.register_referral(db, data.referral_code, user)
    _commit_registration(db, user)
    logger.info(f"Client {user.id} registered (code {user.invitation_code}, referral {getattr(referral, 'id', None)}).")

    _notify_referrer(db, referral, user)
    return _auth_response(user)


def register_merchant(db: Session, data: MerchantRegister) -> AuthResponse:
    user = _create_account(db, data, UserType.MERCHANT)
    rates = settings_service.get_rates(db)
    merchant = crud_merchant.create_merchant(
        db,
        user_id=user.id,
        store_name=data.store_name.strip(),
        category=data.category.strip(),
        commission_rate=rates.merchant_commission,
        approved=settings.MERCHANT_AUTO_APPROVE,
        address=data.address,
        city=data.city,
        state=data.state,
        country=data.country,
    )
    referral = referral_service.register_referral(db, data.referral_code, user)
    _commit_registration(db, user)
    logger.info(
        f"Merchant {user.id} registered with store {merchant.id} "
        f"(approved={merchant.approved}, referral {getattr(referral, 'id', None)})."
    )

    _notify_referrer(db, referral, user)
    return _auth_response(user)


def login(db: Session, credentials: LoginRequest) -> AuthResponse:
    user = crud_user.get_user_by_email(db, str(credentials.email))
    if not user or not verify_password(credentials.password, user.password):
        logger.warning(f"Failed login attempt for email {credentials.email}.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if user.status in (UserStatus.INACTIVE, UserStatus.REJECTED):
        logger.warning(f"Login refused for user {user.id} with status '{user.status}'.")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is not active")

    user.last_login = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} ({user.type}) logged in.")
    return _auth_response(user)
