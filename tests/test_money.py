# tests/test_money.py

from decimal import Decimal

import pytest

from app.core.exceptions import DataIntegrityError
from app.utils.money import format_money, parse_money, parse_rate, percent_of, quantize


def test_quantize_rounds_half_up():
    assert quantize(Decimal("0.005")) == Decimal("0.01")
    assert quantize(Decimal("2.345")) == Decimal("2.35")
    assert quantize(Decimal("2.344")) == Decimal("2.34")


def test_percent_of_uses_cents():
    assert percent_of(Decimal("100.00"), Decimal("2")) == Decimal("2.00")
    # 2% от 0.25 = 0.005 -> 0.01
    assert percent_of(Decimal("0.25"), Decimal("2")) == Decimal("0.01")


@pytest.mark.parametrize("raw, expected", [
    ("10.5", Decimal("10.50")),
    (3, Decimal("3.00")),
    (0.1, Decimal("0.10")),
    (Decimal("-4.999"), Decimal("-5.00")),
])
def test_parse_money_accepts_numbers(raw, expected):
    assert parse_money(raw) == expected


@pytest.mark.parametrize("raw", [None, "abc", "NaN", "Infinity", ""])
def test_parse_money_rejects_garbage(raw):
    """Битое значение не должно молча превращаться в ноль."""
    with pytest.raises(DataIntegrityError) as exc_info:
        parse_money(raw, field="balance")
    assert exc_info.value.field == "balance"


def test_parse_rate_range():
    assert parse_rate("2.5", "client_cashback") == Decimal("2.5")
    with pytest.raises(DataIntegrityError):
        parse_rate("101", "client_cashback")
    with pytest.raises(DataIntegrityError):
        parse_rate("-1", "client_cashback")


def test_format_money():
    assert format_money(Decimal("1234.5")) == "$1,234.50"
