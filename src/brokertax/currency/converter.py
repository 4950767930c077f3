from __future__ import annotations

import datetime as dt
import logging
from decimal import Decimal

from brokertax.errors import RateUnavailable

from .cash import Cash, round_money
from .fx import FxTable

logger = logging.getLogger(__name__)


class CurrencyConverter:
    """Historical conversion between any two currencies of an FxTable.

    Cross rates go through the table's base currency. Rounding follows the
    tax authority rules for foreign income: round the foreign amount to cents,
    convert with the precise rate, round the result to local cents.
    """

    def __init__(self, rates: FxTable, today: dt.date | None = None) -> None:
        self.rates = rates
        self.today = today or dt.date.today()

    def precise_currency_rate(self, date: dt.date, from_ccy: str, to_ccy: str) -> Decimal:
        from_ccy, to_ccy = from_ccy.upper(), to_ccy.upper()
        if from_ccy == to_ccy:
            return Decimal("1")

        if date > self.today:
            raise RateUnavailable(
                from_ccy,
                date,
                f"An attempt to make currency conversion for future date: {date}",
            )

        from_rate = self._base_rate(date, from_ccy)
        to_rate = self._base_rate(date, to_ccy)
        return from_rate / to_rate

    def _base_rate(self, date: dt.date, currency: str) -> Decimal:
        rate = self.rates.get_rate(date, currency)
        if rate is None:
            raise RateUnavailable(currency, date)
        return rate

    def convert(self, date: dt.date, amount: Decimal, from_ccy: str, to_ccy: str) -> Decimal:
        if from_ccy.upper() == to_ccy.upper():
            return amount
        return amount * self.precise_currency_rate(date, from_ccy, to_ccy)

    def convert_to(self, date: dt.date, cash: Cash, to_ccy: str) -> Decimal:
        return self.convert(date, cash.amount, cash.currency, to_ccy)

    def convert_to_rounding(self, date: dt.date, cash: Cash, to_ccy: str) -> Decimal:
        converted = round_money(self.convert_to(date, cash.round(), to_ccy))
        logger.debug("Converted %s to %s %s on %s", cash, converted, to_ccy, date)
        return converted

    def convert_to_cash_rounding(self, date: dt.date, cash: Cash, to_ccy: str) -> Cash:
        return Cash(to_ccy, self.convert_to_rounding(date, cash, to_ccy))
