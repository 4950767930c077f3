import datetime as dt
from decimal import Decimal

import pytest

from brokertax.currency import Cash, CurrencyConverter, FxTable, min_rate_date
from brokertax.errors import RateUnavailable
from brokertax.taxes import IncomeType, Jurisdiction
from fixtures import TODAY, make_converter


def _table(rows):
    table = FxTable("RUB")
    for (ccy, date), value in rows.items():
        table.add_rate(date, ccy, Decimal(value))
    return table


def test_min_rate_date():
    assert min_rate_date(dt.date(2023, 1, 9)) == dt.date(2022, 12, 30)
    assert min_rate_date(dt.date(2023, 3, 10)) == dt.date(2023, 3, 5)
    assert min_rate_date(dt.date(2023, 5, 12)) == dt.date(2023, 5, 7)
    assert min_rate_date(dt.date(2023, 6, 15)) == dt.date(2023, 6, 12)


def test_get_rate_exact_and_base():
    table = _table({("USD", dt.date(2023, 6, 9)): "82.1"})
    assert table.get_rate(dt.date(2023, 6, 9), "usd") == Decimal("82.1")
    assert table.get_rate(dt.date(2023, 6, 9), "RUB") == Decimal("1")
    assert table.get_rate(dt.date(2023, 6, 9), "EUR") is None


def test_get_rate_falls_back_over_weekend_only():
    table = _table({("USD", dt.date(2023, 6, 9)): "82.1"})
    # Friday rate is used for Saturday through Monday
    assert table.get_rate(dt.date(2023, 6, 12), "USD") == Decimal("82.1")
    assert table.get_rate(dt.date(2023, 6, 13), "USD") is None
    assert table.get_rate(dt.date(2023, 6, 8), "USD") is None


def test_get_rate_new_year_holidays():
    table = _table({("USD", dt.date(2022, 12, 30)): "70.3375"})
    assert table.get_rate(dt.date(2023, 1, 9), "USD") == Decimal("70.3375")
    assert table.get_rate(dt.date(2023, 1, 10), "USD") is None


def test_from_csv_with_nominal(tmp_path):
    path = tmp_path / "rates.csv"
    path.write_text(
        "date,currency,rate,nominal\n"
        "2023-01-10,USD,69.3415,1\n"
        "10.01.2023,JPY,52.7591,100\n",
        encoding="utf-8",
    )
    table = FxTable.from_csv(path)
    assert table.get_rate(dt.date(2023, 1, 10), "USD") == Decimal("69.3415")
    assert table.get_rate(dt.date(2023, 1, 10), "JPY") == Decimal("0.527591")


def test_from_csv_rejects_bad_input(tmp_path):
    path = tmp_path / "rates.csv"
    path.write_text("date,rate\n2023-01-10,1\n", encoding="utf-8")
    with pytest.raises(ValueError, match="missing columns"):
        FxTable.from_csv(path)

    path.write_text("date,currency,rate\n2023-01-10,USD,0\n", encoding="utf-8")
    with pytest.raises(ValueError, match="non-positive"):
        FxTable.from_csv(path)


def test_precise_currency_rate_and_cross_rates():
    table = _table(
        {
            ("USD", dt.date(2023, 6, 9)): "80",
            ("EUR", dt.date(2023, 6, 9)): "88",
        }
    )
    converter = CurrencyConverter(table, today=TODAY)
    date = dt.date(2023, 6, 9)
    assert converter.precise_currency_rate(date, "USD", "USD") == Decimal("1")
    assert converter.precise_currency_rate(date, "USD", "RUB") == Decimal("80")
    assert converter.precise_currency_rate(date, "RUB", "USD") == Decimal("1") / Decimal("80")
    assert converter.precise_currency_rate(date, "EUR", "USD") == Decimal("1.1")


def test_missing_rate_raises():
    converter = make_converter()
    with pytest.raises(RateUnavailable, match="Unable to find USD currency rate"):
        converter.precise_currency_rate(dt.date(2023, 6, 9), "USD", "RUB")


def test_future_conversion_raises():
    converter = make_converter({dt.date(2023, 6, 9): "80"})
    with pytest.raises(RateUnavailable, match="future date"):
        converter.precise_currency_rate(dt.date(2031, 1, 1), "USD", "RUB")


def test_convert_to_rounding_matches_tax_authority():
    # $10.64 at 65.4244 is 696.115616 RUB, declared as 696.12 with 91 RUB of tax
    date = dt.date(2019, 3, 1)
    converter = make_converter({date: "65.4244"})

    local = converter.convert_to_cash_rounding(date, Cash("USD", "10.64"), "RUB")
    assert local == Cash("RUB", "696.12")

    country = Jurisdiction.RUSSIA.country()
    tax = country.tax_to_pay(IncomeType.TRADING, 2019, local)
    assert tax == Cash("RUB", "91")


def test_convert_to_rounding_rounds_source_first():
    date = dt.date(2023, 6, 9)
    converter = make_converter({date: "100"})
    # 1.005 USD is rounded to 1.01 before conversion
    assert converter.convert_to_rounding(date, Cash("USD", "1.005"), "RUB") == Decimal("101.00")
    assert converter.convert_to(date, Cash("USD", "1.005"), "RUB") == Decimal("100.500")
