import datetime as dt
from decimal import Decimal

import pytest

from brokertax.taxes import (
    LtoDeduction,
    LtoDeductionCalculator,
    NetLtoDeductionCalculator,
    calculate_ownership_years,
    is_lto_eligible,
)


@pytest.mark.parametrize(
    ("buy_date", "sell_date", "years"),
    [
        (dt.date(2020, 2, 29), dt.date(2024, 2, 28), 3),
        (dt.date(2020, 2, 29), dt.date(2024, 2, 29), 4),
        (dt.date(2020, 2, 29), dt.date(2023, 2, 28), 3),
        (dt.date(2020, 2, 29), dt.date(2023, 2, 27), 2),
        (dt.date(2019, 5, 10), dt.date(2022, 5, 9), 2),
        (dt.date(2019, 5, 10), dt.date(2022, 5, 10), 3),
        (dt.date(2019, 5, 10), dt.date(2022, 4, 30), 2),
        (dt.date(2019, 5, 10), dt.date(2019, 5, 10), 0),
    ],
)
def test_ownership_years(buy_date, sell_date, years):
    assert calculate_ownership_years(buy_date, sell_date) == years


def test_ownership_years_rejects_reversed_dates():
    with pytest.raises(ValueError, match="is after sell date"):
        calculate_ownership_years(dt.date(2023, 1, 2), dt.date(2023, 1, 1))


def test_lto_eligibility():
    assert is_lto_eligible(dt.date(2014, 1, 1), dt.date(2017, 1, 1)) == (True, 3)
    assert is_lto_eligible(dt.date(2014, 1, 1), dt.date(2016, 12, 31)) == (False, 2)
    # Securities acquired before 2014 are never eligible
    assert is_lto_eligible(dt.date(2013, 12, 31), dt.date(2020, 1, 1)) == (False, 6)


def test_deduction_limit_overrun():
    calc = LtoDeductionCalculator()
    calc.add(Decimal("13000000"), 4)
    assert calc.calculate() == LtoDeduction(
        deduction=Decimal("12000000"), limit=Decimal("12000000"), loss=Decimal("1000000")
    )


def test_deduction_limit_is_profit_weighted():
    calc = LtoDeductionCalculator()
    calc.add(Decimal("1000000"), 3)
    calc.add(Decimal("3000000"), 5)
    result = calc.calculate()
    # (1M * 3 + 3M * 5) / 4M = 4.5 years
    assert result.limit == Decimal("13500000")
    assert result.deduction == Decimal("4000000")
    assert result.loss == 0


def test_empty_calculator():
    assert LtoDeductionCalculator().calculate() == LtoDeduction(
        deduction=Decimal("0"), limit=Decimal("0"), loss=Decimal("0")
    )


def test_invalid_deductible_profit():
    calc = LtoDeductionCalculator()
    with pytest.raises(ValueError, match="must be positive"):
        calc.add(Decimal("0"), 3)
    with pytest.raises(ValueError, match="at least 3 years"):
        calc.add(Decimal("100"), 2)


def test_net_lto_deduction(caplog):
    calc = NetLtoDeductionCalculator()
    calc.add_profit(2023, Decimal("13000000"), 4)
    calc.add_applied_deduction(2023, Decimal("12500000"), Decimal("0"))
    calc.add_applied_deduction(2022, Decimal("0"), Decimal("0"))

    result = calc.calculate()
    assert list(result) == [2022, 2023]

    assert result[2022].deduction == 0
    assert result[2022].applied_above_limit == 0

    lto = result[2023]
    assert lto.deduction == Decimal("12000000")
    assert lto.applied == Decimal("12500000")
    assert lto.applied_above_limit == Decimal("500000")
    assert lto.loss == Decimal("1000000")
    assert "exceeds the calculated one" in caplog.text
    assert "exceeds the deduction limit" in caplog.text
