"""Test fixtures for trades, rates and statements.

Production code reads trades from statement CSVs via load_statement_csv() and
rates from an FX table CSV. Tests build the same objects directly.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

from brokertax.currency import Cash, CurrencyConverter, FxTable
from brokertax.trading import BrokerInfo, BrokerStatement, StockBuy, StockSell

TODAY = dt.date(2030, 1, 1)


def rub(amount) -> Cash:
    return Cash("RUB", Decimal(str(amount)))


def usd(amount) -> Cash:
    return Cash("USD", Decimal(str(amount)))


def make_converter(usd_rates: dict[dt.date, str] | None = None) -> CurrencyConverter:
    """RUB-based converter with the given USD rates."""
    table = FxTable("RUB")
    for date, rate in (usd_rates or {}).items():
        table.data["USD"][date.isoformat()] = Decimal(rate)
    table.reindex()
    return CurrencyConverter(table, today=TODAY)


def buy(
    symbol: str,
    quantity,
    price: Cash,
    date: dt.date,
    commission: Cash | None = None,
    execution_date: dt.date | None = None,
) -> StockBuy:
    return StockBuy(
        symbol=symbol,
        quantity=Decimal(str(quantity)),
        price=price,
        commission=commission if commission is not None else Cash.zero(price.currency),
        conclusion_date=date,
        execution_date=execution_date or date,
    )


def sell(
    symbol: str,
    quantity,
    price: Cash,
    date: dt.date,
    commission: Cash | None = None,
    execution_date: dt.date | None = None,
) -> StockSell:
    return StockSell(
        symbol=symbol,
        quantity=Decimal(str(quantity)),
        price=price,
        commission=commission if commission is not None else Cash.zero(price.currency),
        conclusion_date=date,
        execution_date=execution_date or date,
    )


def statement(**kwargs) -> BrokerStatement:
    broker = kwargs.pop("broker", None) or BrokerInfo("Test Broker")
    return BrokerStatement(broker=broker, **kwargs)
