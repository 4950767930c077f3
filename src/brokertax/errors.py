from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import TypeVar

E = TypeVar("E", bound=Exception)


class BrokerTaxError(ValueError):
    """Base class for errors that abort a tax calculation run."""


class CurrencyMismatch(BrokerTaxError):
    def __init__(self, first: str, second: str) -> None:
        super().__init__(f"Currency mismatch: {first} and {second}")
        self.currencies = (first, second)


class InsufficientLots(BrokerTaxError):
    """A sell tries to close more than the open positions hold."""

    def __init__(self, symbol: str, date: dt.date, missing_qty: Decimal) -> None:
        super().__init__(
            f"Error while processing {symbol} position closing on {date}: "
            f"there are no open positions for {missing_qty} shares"
        )
        self.symbol = symbol
        self.date = date
        self.missing_qty = missing_qty


class RateUnavailable(BrokerTaxError):
    def __init__(self, currency: str, date: dt.date, message: str | None = None) -> None:
        super().__init__(message or f"Unable to find {currency} currency rate for {date}")
        self.currency = currency
        self.date = date


class UnsupportedJurisdiction(BrokerTaxError):
    def __init__(self, jurisdiction: str, what: str) -> None:
        super().__init__(f"{what} is not supported for {jurisdiction} jurisdiction")
        self.jurisdiction = jurisdiction


def with_context(error: E, context: str) -> E:
    """Return a copy of error, of the same type and attributes, with context prepended."""
    wrapped = type(error).__new__(type(error))
    wrapped.__dict__.update(error.__dict__)
    wrapped.args = (f"{context}: {error}",)
    return wrapped
