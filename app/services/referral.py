# app/services/referral.py

import logging
from decimal import Decimal
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.crud import merchant as crud_merchant
from app.crud import referral as crud_referral
from app.crud import user as crud_user
from app.models.ledger import LedgerEntryKind
from app.models.referral import Referral, ReferralKind, ReferralStatus
from app.models.user import User, UserType
from app.schemas.referral import ReferralInfo
from app.schemas.user import InviteInfo, InviteStore
from app.services import ledger as ledger_service
from app.services import settings as settings_service
from app.utils.money import parse_money

logger = logging.getLogger(__name__)

CLIENT_CODE_PREFIX = "CL"
MERCHANT_CODE_PREFIX = "LJ"
EXPECTED_TYPE_BY_PREFIX = {
    CLIENT_CODE_PREFIX: UserType.CLIENT,
    MERCHANT_CODE_PREFIX: UserType.MERCHANT,
}


def build_invitation_code(user: User) -> str:
    """CL0001 для клиентов, LJ0001 для магазинов (по ID пользователя)."""
    prefix = MERCHANT_CODE_PREFIX if user.type == UserType.MERCHANT else CLIENT_CODE_PREFIX
    return f"{prefix}{user.id:04d}"


def build_referral_link(code: str | None) -> str | None:
    if not code:
        return None
    return f"{settings.FRONTEND_URL.rstrip('/')}/register?referral={code}"


def signup_bonus(db: Session) -> Decimal:
    """
    Фиксированный бонус за регистрацию приглашенного: значение ставки
    referral_bonus, взятое как денежная сумма (1.0 -> $1.00).
    """
    rates = settings_service.get_rates(db)
    return parse_money(rates.referral_bonus, field="referral_bonus")


def register_referral(db: Session, referrer_code: str | None, new_user: User) -> Referral | None:
    """
    Привязывает нового пользователя к пригласившему по коду приглашения и
    сразу начисляет бонус за регистрацию.

    Неизвестный код не ломает регистрацию (возвращается None). Несовпадение
    префикса CL/LJ с типом пригласившего только логируется. Повторный вызов
    для той же пары ничего не меняет и возвращает существующую связь.
    Требует внешнего вызова db.commit().
    """
    if not referrer_code:
        return None

    code = referrer_code.strip()
    referrer = crud_user.get_user_by_invitation_code(db, code)
    if not referrer:
        logger.warning(f"Referral code '{code}' used by user {new_user.id} does not exist. Skipping.")
        return None

    expected_type = EXPECTED_TYPE_BY_PREFIX.get(code[:2].upper())
    if expected_type and expected_type != referrer.type:
        logger.warning(
            f"Referral code '{code}' prefix suggests a {expected_type}, "
            f"but referrer {referrer.id} is a {referrer.type}. Accepting anyway."
        )

    if referrer.id == new_user.id:
        logger.warning(f"User {new_user.id} tried to refer themselves. Skipping.")
        return None

    existing = crud_referral.get_signup_referral(db, referrer_id=referrer.id, referred_id=new_user.id)
    if existing:
        logger.info(f"Referral {referrer.id} -> {new_user.id} already exists (ID {existing.id}). No-op.")
        return existing

    bonus = signup_bonus(db)
    # Уникальный индекс по паре не даст создать вторую связь параллельным запросом
    referral = crud_referral.create_referral(
        db,
        referrer_id=referrer.id,
        referred_id=new_user.id,
        bonus=bonus,
        kind=ReferralKind.SIGNUP,
        status=ReferralStatus.ACTIVE,
    )

    ledger_service.credit(
        db,
        user_id=referrer.id,
        amount=bonus,
        kind=LedgerEntryKind.REFERRAL_SIGNUP,
        reference_id=referral.id,
        description=f"Referral bonus for inviting user #{new_user.id}",
    )
    logger.info(f"Referral {referral.id} created: {referrer.id} -> {new_user.id}, bonus {bonus}.")
    return referral


def resolve_invite(db: Session, code: str) -> InviteInfo:
    """Публичная информация о пригласившем по коду приглашения."""
    code = (code or "").strip()
    if len(code) < 4 or code[:2].upper() not in EXPECTED_TYPE_BY_PREFIX:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invalid invitation code")

    referrer = crud_user.get_user_by_invitation_code(db, code)
    if not referrer:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invitation code not found")

    store = None
    commission_rate = None
    if referrer.type == UserType.MERCHANT:
        merchant = crud_merchant.get_merchant_by_user_id(db, referrer.id)
        if merchant:
            store = InviteStore(store_name=merchant.store_name, category=merchant.category, logo=merchant.logo)
            commission_rate = merchant.commission_rate

    return InviteInfo(
        referrer_id=referrer.id,
        referrer_name=referrer.name,
        referrer_type=referrer.type,
        invitation_code=referrer.invitation_code,
        store=store,
        commission_rate=commission_rate,
    )


def get_referral_info(db: Session, user: User) -> ReferralInfo:
    """Код, ссылка и статистика приглашений пользователя."""
    return ReferralInfo(
        invitation_code=user.invitation_code,
        referral_link=build_referral_link(user.invitation_code),
        total_referrals=crud_referral.count_referred_users(db, referrer_id=user.id),
        active_referrals=crud_referral.count_referred_users(db, referrer_id=user.id, status=ReferralStatus.ACTIVE),
        total_earned=ledger_service.get_referral_earnings(db, user.id),
        recent=crud_referral.get_referrals_by_referrer(db, referrer_id=user.id, limit=10),
    )
