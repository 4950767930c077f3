from decimal import Decimal

import pytest

from brokertax.currency import Cash, round_cost_piece, round_to
from brokertax.errors import CurrencyMismatch


def test_rounding_is_half_up():
    assert Cash("USD", Decimal("1.005")).round() == Cash("USD", Decimal("1.01"))
    assert Cash("USD", Decimal("1.125")).round() == Cash("USD", Decimal("1.13"))
    assert Cash("USD", Decimal("-1.005")).round() == Cash("USD", Decimal("-1.01"))
    assert Cash("RUB", Decimal("90.50")).round_to(0) == Cash("RUB", Decimal("91"))
    assert round_to(Decimal("2.5"), 0) == Decimal("3")


def test_currency_is_normalized():
    cash = Cash(" usd ", "10")
    assert cash.currency == "USD"
    assert cash.amount == Decimal("10")


def test_float_amounts_rejected():
    with pytest.raises(TypeError):
        Cash("USD", 1.5)


def test_mixed_currency_arithmetic_raises():
    with pytest.raises(CurrencyMismatch, match="Currency mismatch: USD and RUB"):
        Cash("USD", "1") + Cash("RUB", "1")
    with pytest.raises(ValueError):
        Cash("USD", "1") - Cash("EUR", "1")
    with pytest.raises(CurrencyMismatch):
        Cash("USD", "1") < Cash("RUB", "2")


def test_arithmetic():
    a = Cash("USD", "10.50")
    b = Cash("USD", "0.50")
    assert a + b == Cash("USD", "11")
    assert a - b == Cash("USD", "10")
    assert -a == Cash("USD", "-10.50")
    assert abs(Cash("USD", "-3")) == Cash("USD", "3")
    assert a * 2 == Cash("USD", "21")
    assert Decimal("2") * a == Cash("USD", "21")
    assert a / 2 == Cash("USD", "5.25")
    assert a / b == Decimal("21")
    assert max(a, b) == a


def test_predicates():
    assert Cash.zero("RUB").is_zero()
    assert Cash("RUB", "1").is_positive()
    assert Cash("RUB", "-1").is_negative()


def test_normalize_currency_converts_pence():
    assert Cash("GBX", "1250").normalize_currency() == Cash("GBP", "12.5")
    assert Cash("USD", "1").normalize_currency() == Cash("USD", "1")


def test_str_formatting():
    assert str(Cash("USD", "1234.5")) == "1 234.50 USD"
    assert str(Cash("RUB", "1000000")) == "1 000 000 RUB"


def test_round_cost_piece():
    assert round_cost_piece(Decimal("600"), Decimal("60"), Decimal("60")) == Decimal("600")
    assert round_cost_piece(Decimal("100"), Decimal("1"), Decimal("3")) == Decimal(
        "33.33333333"
    )
    assert round_cost_piece(Decimal("100"), Decimal("1"), Decimal("0")) == Decimal("0")
