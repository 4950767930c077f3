import datetime as dt
from decimal import Decimal

import pytest

from brokertax.currency import Cash
from brokertax.errors import CurrencyMismatch
from brokertax.taxes import IncomeType, Jurisdiction, Tax, TaxCalculator, round_tax
from fixtures import rub


def test_round_tax_rounds_to_kopecks_first():
    # 0.495 -> 0.50 -> 1, while direct rounding to roubles would give 0
    assert round_tax(Decimal("0.495"), 0) == Decimal("1")
    assert round_tax(Decimal("90.4956"), 0) == Decimal("91")
    assert round_tax(Decimal("13.494"), 0) == Decimal("13")
    assert round_tax(Decimal("1.005"), 2) == Decimal("1.01")


@pytest.mark.parametrize(
    ("income", "tax"),
    [("100", "13"), ("103.80", "13"), ("103.81", "14"), ("0", "0"), ("-500", "0")],
)
def test_russian_trading_tax(income, tax):
    country = Jurisdiction.RUSSIA.country()
    assert country.tax_to_pay(IncomeType.TRADING, 2023, rub(income)) == rub(tax)


def test_tax_to_pay_with_paid_tax():
    country = Jurisdiction.RUSSIA.country()
    assert country.tax_to_pay(IncomeType.DIVIDENDS, 2023, rub(1000), rub(100)) == rub(30)
    assert country.tax_to_pay(IncomeType.DIVIDENDS, 2023, rub(1000), rub(200)) == rub(0)
    # Paid tax is rounded the same way as the expected one
    assert country.tax_to_pay(IncomeType.DIVIDENDS, 2023, rub(1000), rub("129.4")) == rub(1)

    with pytest.raises(ValueError, match="can't be negative"):
        country.tax_to_pay(IncomeType.DIVIDENDS, 2023, rub(1000), rub(-1))


def test_tax_to_pay_requires_local_currency():
    country = Jurisdiction.RUSSIA.country()
    with pytest.raises(CurrencyMismatch):
        country.tax_to_pay(IncomeType.TRADING, 2023, Cash("USD", "100"))


def test_rate_tables_are_effective_until_superseded():
    country = Jurisdiction.RUSSIA.country(trading={2021: Decimal("15")})
    assert country.tax_rate(IncomeType.TRADING, 2020) == Decimal("0.13")
    assert country.tax_rate(IncomeType.TRADING, 2021) == Decimal("0.15")
    assert country.tax_rate(IncomeType.TRADING, 2030) == Decimal("0.15")
    assert country.tax_rate(IncomeType.DIVIDENDS, 2030) == Decimal("0.13")


def test_usa_jurisdiction():
    country = Jurisdiction.USA.country()
    assert country.currency == "USD"
    assert country.tax_precision == 2
    assert country.tax_rate(IncomeType.TRADING, 2023) == Decimal("0")
    assert country.tax_rate(IncomeType.DIVIDENDS, 2023) == Decimal("0.1")
    assert country.tax_to_pay(IncomeType.DIVIDENDS, 2023, Cash("USD", "10.05")) == Cash(
        "USD", "1.01"
    )
    assert not Jurisdiction.USA.supports_tax_statement
    assert Jurisdiction.RUSSIA.supports_tax_statement


def test_deduce_income():
    country = Jurisdiction.RUSSIA.country()
    assert country.deduce_income(IncomeType.DIVIDENDS, 2023, rub(87)) == rub(100)


def test_tax_calculator():
    calc = TaxCalculator(Jurisdiction.RUSSIA.country())
    date = dt.date(2023, 5, 1)

    tax = calc.add_income(IncomeType.DIVIDENDS, date, rub(1000), rub(50))
    assert tax == Tax(expected=rub(130), paid=rub(50), to_pay=rub(80))

    tax = calc.add_income(IncomeType.INTEREST, date, rub(100))
    assert tax == Tax(expected=rub(13), paid=rub(0), to_pay=rub(13))

    tax = calc.add_tax_agent_income(IncomeType.DIVIDENDS, date, rub(1000), rub(130))
    assert tax.to_pay == rub(0)
    assert tax.expected == rub(130)
