from __future__ import annotations

import datetime as dt
import enum
from dataclasses import dataclass, field
from decimal import Decimal
from fractions import Fraction

from brokertax.currency import Cash, CurrencyConverter, quantize_allocation
from brokertax.taxes import LtoDeductibleProfit


class StockSource(enum.Enum):
    TRADE = "trade"
    CORPORATE_ACTION = "corporate-action"


@dataclass
class StockBuy:
    symbol: str
    quantity: Decimal
    # All of the following can be zero for corporate actions and grants
    price: Cash
    commission: Cash
    conclusion_date: dt.date
    execution_date: dt.date
    source: StockSource = StockSource.TRADE
    volume: Cash | None = None  # broker-rounded total, may differ from price * quantity

    @property
    def cost(self) -> Cash:
        return self.volume if self.volume is not None else self.price * self.quantity


@dataclass
class StockSell:
    symbol: str
    quantity: Decimal
    price: Cash
    commission: Cash
    conclusion_date: dt.date
    execution_date: dt.date
    volume: Cash | None = None

    @property
    def revenue(self) -> Cash:
        return self.volume if self.volume is not None else self.price * self.quantity


def scale_quantity(quantity: Decimal, ratio: Fraction) -> Decimal:
    """Multiply quantity by ratio, refusing results that aren't exact."""
    scaled = quantity * ratio.numerator / ratio.denominator
    if scaled * ratio.denominator != quantity * ratio.numerator:
        raise ValueError(f"Split by {ratio} leaves a fractional quantity from {quantity}")
    return scaled


@dataclass(frozen=True)
class StockSplit:
    date: dt.date
    symbol: str
    ratio: Fraction  # new shares per old share; < 1 for reverse splits

    @classmethod
    def from_quantities(
        cls, date: dt.date, symbol: str, from_qty: Decimal, to_qty: Decimal
    ) -> StockSplit:
        if from_qty <= 0 or to_qty <= 0:
            raise ValueError(f"Invalid {symbol} split quantities: {from_qty} -> {to_qty}")
        return cls(date, symbol, Fraction(to_qty) / Fraction(from_qty))


@dataclass(frozen=True)
class SymbolRename:
    date: dt.date
    old_symbol: str
    new_symbol: str


@dataclass(frozen=True)
class SpinOff:
    date: dt.date
    symbol: str
    new_symbol: str
    quantity: Decimal
    cost: Cash


CorporateAction = StockSplit | SymbolRename | SpinOff


@dataclass
class BuyLot:
    """An open position slice owned by the FIFO queue of its symbol.

    quantity, volume and commission hold what is still unsold; quantity is in
    post-split units and price is per post-split share.
    """

    symbol: str
    conclusion_date: dt.date
    execution_date: dt.date
    quantity: Decimal
    price: Cash
    volume: Cash
    commission: Cash
    source: StockSource
    multiplier: Fraction = Fraction(1)
    index: int = 0

    def split(self, ratio: Fraction) -> None:
        self.quantity = scale_quantity(self.quantity, ratio)
        self.multiplier *= ratio
        self.price = Cash(
            self.price.currency,
            quantize_allocation(self.price.amount * ratio.denominator / ratio.numerator),
        )


@dataclass(frozen=True)
class SellSource:
    """A slice of a lot consumed by a sell."""

    symbol: str
    quantity: Decimal  # post-split units
    multiplier: Fraction
    price: Cash
    volume: Cash
    commission: Cash
    conclusion_date: dt.date
    execution_date: dt.date
    source: StockSource

    @property
    def original_quantity(self) -> Decimal:
        return self.quantity * self.multiplier.denominator / self.multiplier.numerator


@dataclass
class FifoDetails:
    symbol: str
    quantity: Decimal
    multiplier: Fraction
    conclusion_date: dt.date
    execution_date: dt.date
    source: StockSource
    # Can be zero for corporate actions
    price: Cash
    cost: Cash
    local_cost: Cash
    commission: Cash
    local_commission: Cash
    total_local_cost: Cash
    tax_exemption_applied: bool = False
    long_term_ownership_deductible: LtoDeductibleProfit | None = None

    @classmethod
    def from_source(
        cls, source: SellSource, local_currency: str, converter: CurrencyConverter
    ) -> FifoDetails:
        cost = source.volume.round()
        local_cost = converter.convert_to_cash_rounding(
            source.execution_date, cost, local_currency
        )

        commission = source.commission.round()
        local_commission = converter.convert_to_cash_rounding(
            source.conclusion_date, commission, local_currency
        )

        return cls(
            symbol=source.symbol,
            quantity=source.quantity,
            multiplier=source.multiplier,
            conclusion_date=source.conclusion_date,
            execution_date=source.execution_date,
            source=source.source,
            price=source.price,
            cost=cost,
            local_cost=local_cost,
            commission=commission,
            local_commission=local_commission,
            total_local_cost=local_cost + local_commission,
        )

    def total_cost(self, currency: str, converter: CurrencyConverter) -> Cash:
        cost = converter.convert_to_cash_rounding(self.execution_date, self.cost, currency)
        commission = converter.convert_to_cash_rounding(
            self.conclusion_date, self.commission, currency
        )
        return cost + commission


@dataclass
class SellDetails:
    revenue: Cash
    local_revenue: Cash
    commission: Cash
    local_commission: Cash

    # Can be zero when the position comes from corporate actions
    purchase_cost: Cash
    purchase_local_cost: Cash
    total_cost: Cash
    total_local_cost: Cash

    profit: Cash
    local_profit: Cash
    taxable_local_profit: Cash
    taxable_local_profit_before_lto: Cash

    lto_deduction: Cash
    tax_to_pay: Cash
    tax_deduction: Cash

    real_tax_ratio: Decimal | None
    real_profit_ratio: Decimal | None
    real_local_profit_ratio: Decimal | None

    fifo: list[FifoDetails] = field(default_factory=list)

    @property
    def tax_exemption_applied(self) -> bool:
        return any(details.tax_exemption_applied for details in self.fifo)

    @property
    def lto_deductibles(self) -> list[LtoDeductibleProfit]:
        return [
            details.long_term_ownership_deductible
            for details in self.fifo
            if details.long_term_ownership_deductible is not None
        ]

    @property
    def quantity(self) -> Decimal:
        return sum((details.quantity for details in self.fifo), Decimal("0"))
