# app/services/settings.py

import logging
import math
from decimal import Decimal
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.config import settings as app_settings # Используем псевдоним, чтобы избежать конфликтов
from app.crud import audit as crud_audit
from app.crud import commission as crud_commission
from app.models.commission import CommissionSettings
from app.models.user import User
from app.schemas.settings import CommissionRates, CommissionSettingsUpdate, PaginatedCommissionSettings
from app.utils.money import HUNDRED, parse_money, parse_rate

logger = logging.getLogger(__name__)

RATE_FIELDS = ("platform_fee", "merchant_commission", "client_cashback", "referral_bonus", "max_cashback_bonus")


def _default_rates() -> dict:
    return {
        "platform_fee": app_settings.DEFAULT_PLATFORM_FEE,
        "merchant_commission": app_settings.DEFAULT_MERCHANT_COMMISSION,
        "client_cashback": app_settings.DEFAULT_CLIENT_CASHBACK,
        "referral_bonus": app_settings.DEFAULT_REFERRAL_BONUS,
        "max_cashback_bonus": app_settings.DEFAULT_MAX_CASHBACK_BONUS,
        "min_withdrawal": app_settings.DEFAULT_MIN_WITHDRAWAL,
    }


def get_current_settings(db: Session) -> CommissionSettings:
    """
    Возвращает действующую строку ставок. Если история пуста,
    добавляет строку со значениями по умолчанию (flush, без commit).
    """
    current = crud_commission.get_current_settings(db)
    if current:
        return current

    logger.info("No commission settings found. Inserting defaults.")
    return crud_commission.create_settings(db, **_default_rates())


def to_rates(row: CommissionSettings) -> CommissionRates:
    """Разбирает хранимые ставки. Битые значения - DataIntegrityError."""
    values = {field: parse_rate(getattr(row, field), field) for field in RATE_FIELDS}
    values["min_withdrawal"] = parse_money(row.min_withdrawal, field="min_withdrawal")
    return CommissionRates(**values)


def get_rates(db: Session) -> CommissionRates:
    return to_rates(get_current_settings(db))


def validate_rates(rates: dict) -> None:
    """Проверяет согласованность набора ставок перед сохранением."""
    for field in RATE_FIELDS:
        value = Decimal(rates[field])
        if value < 0 or value > HUNDRED:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"'{field}' must be between 0 and 100"
            )

    if Decimal(rates["client_cashback"]) > Decimal(rates["max_cashback_bonus"]):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Client cashback cannot exceed the maximum cashback bonus"
        )

    distributed = sum(
        Decimal(rates[field])
        for field in ("client_cashback", "referral_bonus", "merchant_commission", "platform_fee")
    )
    if distributed > HUNDRED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Total distributed rates cannot exceed 100% of the sale amount"
        )

    if Decimal(rates["min_withdrawal"]) < 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Minimum withdrawal cannot be negative"
        )


def update_settings(db: Session, admin: User, settings_data: CommissionSettingsUpdate) -> CommissionSettings:
    """
    Частично обновляет ставки: создает новую действующую строку в истории.
    """
    current = to_rates(get_current_settings(db))
    update_data = settings_data.model_dump(exclude_unset=True, exclude_none=True)
    if not update_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No settings to update")

    merged = current.model_dump()
    merged.update(update_data)
    validate_rates(merged)

    new_settings = crud_commission.create_settings(db, updated_by=admin.id, **merged)
    crud_audit.create_log(
        db, action="settings_updated", user_id=admin.id,
        details=f"Changed fields: {sorted(update_data)}; new settings ID: {new_settings.id}"
    )
    db.commit()
    db.refresh(new_settings)

    logger.info(f"Admin {admin.id} updated commission settings: {update_data}. New settings ID: {new_settings.id}")
    return new_settings


def get_history(db: Session, page: int, size: int) -> PaginatedCommissionSettings:
    skip = (page - 1) * size
    rows = crud_commission.get_settings_history(db, skip=skip, limit=size)
    total_items = crud_commission.count_settings_history(db)
    total_pages = math.ceil(total_items / size) if total_items > 0 else 1
    return PaginatedCommissionSettings(
        total_items=total_items,
        total_pages=total_pages,
        current_page=page,
        size=size,
        items=rows,
    )
