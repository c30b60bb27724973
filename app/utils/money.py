# app/utils/money.py

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from app.core.exceptions import DataIntegrityError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def quantize(value: Decimal) -> Decimal:
    """Округляет сумму до центов (2 знака, ROUND_HALF_UP)."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_money(value, field: str = "amount") -> Decimal:
    """
    Приводит хранимое значение к Decimal с двумя знаками.
    Любое нечисловое/бесконечное значение - DataIntegrityError, а не молчаливый ноль.
    """
    if value is None:
        raise DataIntegrityError(f"Missing value for '{field}'", field=field, value=value)
    if isinstance(value, float):
        value = repr(value)
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        raise DataIntegrityError(f"Value of '{field}' is not a valid decimal", field=field, value=value)
    if not parsed.is_finite():
        raise DataIntegrityError(f"Value of '{field}' is not finite", field=field, value=value)
    return quantize(parsed)


def parse_rate(value, field: str) -> Decimal:
    """Ставка в процентах (0..100), без округления до центов."""
    if value is None:
        raise DataIntegrityError(f"Missing rate '{field}'", field=field, value=value)
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        raise DataIntegrityError(f"Rate '{field}' is not a valid decimal", field=field, value=value)
    if not parsed.is_finite() or parsed < 0 or parsed > HUNDRED:
        raise DataIntegrityError(f"Rate '{field}' is out of range", field=field, value=value)
    return parsed


def percent_of(amount: Decimal, rate_percent: Decimal) -> Decimal:
    """amount × rate% с округлением до центов."""
    return quantize(amount * rate_percent / HUNDRED)


def format_money(amount: Decimal) -> str:
    return f"${quantize(amount):,.2f}"
