from __future__ import annotations

import functools
import sys
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from brokertax.errors import CurrencyMismatch

DecimalLike = Decimal | int | str

_ALLOCATION_Q = Decimal("0.00000001")


def round_to(amount: Decimal, points: int) -> Decimal:
    """Round half away from zero to the given number of decimal places."""
    return amount.quantize(Decimal(1).scaleb(-points), rounding=ROUND_HALF_UP)


def round_money(amount: Decimal) -> Decimal:
    return round_to(amount, 2)


def quantize_allocation(value: Decimal) -> Decimal:
    """Quantize allocation amounts (e.g., proportional basis)."""
    return value.quantize(_ALLOCATION_Q, rounding=ROUND_HALF_UP)


def round_cost_piece(total: Decimal, take: Decimal, lot_qty: Decimal) -> Decimal:
    """Allocate a proportional amount of a lot total with deterministic rounding.

    Taking the whole remaining quantity returns the remaining total untouched,
    so a fully consumed lot never leaves a rounding residue behind.
    """
    if lot_qty == 0:
        return Decimal("0")
    if take == lot_qty:
        return total
    return quantize_allocation(total * take / lot_qty)


def _to_decimal(value: DecimalLike) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        raise TypeError("float amounts are not accepted; use Decimal or str")
    return Decimal(value)


@functools.total_ordering
@dataclass(frozen=True)
class Cash:
    """A currency-tagged amount.

    Arithmetic and comparisons between different currencies raise
    CurrencyMismatch instead of silently mixing units.
    """

    currency: str
    amount: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "currency", sys.intern(self.currency.strip().upper()))
        object.__setattr__(self, "amount", _to_decimal(self.amount))

    @classmethod
    def zero(cls, currency: str) -> Cash:
        return cls(currency, Decimal("0"))

    def is_zero(self) -> bool:
        return self.amount.is_zero()

    def is_positive(self) -> bool:
        return self.amount > 0

    def is_negative(self) -> bool:
        return self.amount < 0

    def ensure_same_currency(self, other: Cash) -> None:
        if self.currency != other.currency:
            raise CurrencyMismatch(self.currency, other.currency)

    def round(self) -> Cash:
        return Cash(self.currency, round_money(self.amount))

    def round_to(self, points: int) -> Cash:
        return Cash(self.currency, round_to(self.amount, points))

    def normalize(self) -> Cash:
        return Cash(self.currency, self.amount.normalize())

    def normalize_currency(self) -> Cash:
        # London quotes come in pence
        if self.currency == "GBX":
            return Cash("GBP", self.amount / 100).normalize()
        return self

    def __add__(self, other: Cash) -> Cash:
        if not isinstance(other, Cash):
            return NotImplemented
        self.ensure_same_currency(other)
        return Cash(self.currency, self.amount + other.amount)

    def __sub__(self, other: Cash) -> Cash:
        if not isinstance(other, Cash):
            return NotImplemented
        self.ensure_same_currency(other)
        return Cash(self.currency, self.amount - other.amount)

    def __neg__(self) -> Cash:
        return Cash(self.currency, -self.amount)

    def __abs__(self) -> Cash:
        return Cash(self.currency, self.amount.copy_abs())

    def __mul__(self, other: DecimalLike) -> Cash:
        if isinstance(other, Cash):
            return NotImplemented
        return Cash(self.currency, self.amount * _to_decimal(other))

    __rmul__ = __mul__

    def __truediv__(self, other):
        if isinstance(other, Cash):
            self.ensure_same_currency(other)
            return self.amount / other.amount
        return Cash(self.currency, self.amount / _to_decimal(other))

    def __lt__(self, other: Cash) -> bool:
        if not isinstance(other, Cash):
            return NotImplemented
        self.ensure_same_currency(other)
        return self.amount < other.amount

    def __str__(self) -> str:
        amount = self.amount.normalize()
        exponent = amount.as_tuple().exponent
        if isinstance(exponent, int) and exponent == -1:
            amount = amount.quantize(Decimal("0.01"))
        elif isinstance(exponent, int) and exponent > 0:
            amount = amount.quantize(Decimal("1"))
        return f"{amount:,} {self.currency}".replace(",", " ")

