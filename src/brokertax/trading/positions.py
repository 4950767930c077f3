from __future__ import annotations

import datetime as dt
import logging
from collections import defaultdict, deque
from decimal import Decimal
from fractions import Fraction

from brokertax.currency import Cash, round_cost_piece

from .domain import BuyLot, SellSource, scale_quantity

logger = logging.getLogger(__name__)


def _piece(total: Cash, take: Decimal, lot_qty: Decimal) -> Cash:
    return Cash(total.currency, round_cost_piece(total.amount, take, lot_qty))


class PositionBook:
    """Maintain FIFO lots per symbol without matching policy concerns."""

    def __init__(self) -> None:
        self._positions: dict[str, deque[BuyLot]] = defaultdict(deque)
        self._next_index = 0

    def append_buy(self, lot: BuyLot) -> None:
        if lot.quantity <= 0:
            raise ValueError("buy lot quantity must be positive")
        lot.index = self._next_index
        self._next_index += 1
        self._insert(lot)

    def _insert(self, lot: BuyLot) -> None:
        lots = self._positions[lot.symbol]
        key = (lot.conclusion_date, lot.index)
        if not lots or (lots[-1].conclusion_date, lots[-1].index) <= key:
            lots.append(lot)
            return

        pos = len(lots)
        while pos > 0 and (lots[pos - 1].conclusion_date, lots[pos - 1].index) > key:
            pos -= 1
        lots.insert(pos, lot)

    def open_quantity(self, symbol: str) -> Decimal:
        return sum((lot.quantity for lot in self._positions.get(symbol, ())), Decimal("0"))

    def open_lots(self, symbol: str) -> list[BuyLot]:
        return list(self._positions.get(symbol, ()))

    def has_position(self, symbol: str) -> bool:
        return bool(self._positions.get(symbol))

    def symbols(self) -> list[str]:
        return sorted(symbol for symbol, lots in self._positions.items() if lots)

    def consume_fifo(self, symbol: str, qty: Decimal) -> tuple[list[SellSource], Decimal]:
        """Take qty from the oldest lots; return the slices and the unmatched rest."""
        if qty <= 0:
            raise ValueError("qty to consume must be positive")

        sources: list[SellSource] = []
        qty_remaining = qty

        lots = self._positions.get(symbol)
        while qty_remaining > 0 and lots:
            lot = lots[0]
            take = min(qty_remaining, lot.quantity)
            volume = _piece(lot.volume, take, lot.quantity)
            commission = _piece(lot.commission, take, lot.quantity)

            sources.append(
                SellSource(
                    symbol=symbol,
                    quantity=take,
                    multiplier=lot.multiplier,
                    price=lot.price,
                    volume=volume,
                    commission=commission,
                    conclusion_date=lot.conclusion_date,
                    execution_date=lot.execution_date,
                    source=lot.source,
                )
            )

            lot.quantity -= take
            lot.volume -= volume
            lot.commission -= commission
            qty_remaining -= take

            if lot.quantity <= 0:
                if lot.quantity < 0:
                    raise ValueError("lot quantity cannot become negative")
                lots.popleft()

        return sources, qty_remaining

    def split(self, symbol: str, date: dt.date, ratio: Fraction) -> int:
        """Apply a split to lots acquired before ``date``; return how many changed."""
        if ratio <= 0:
            raise ValueError(f"Invalid {symbol} split ratio: {ratio}")

        lots = [lot for lot in self._positions.get(symbol, ()) if lot.conclusion_date < date]
        # Leave every lot untouched if any of them can't be split exactly
        for lot in lots:
            scale_quantity(lot.quantity, ratio)
        for lot in lots:
            lot.split(ratio)
        return len(lots)

    def rename(self, old_symbol: str, new_symbol: str) -> int:
        lots = self._positions.pop(old_symbol, deque())
        for lot in lots:
            lot.symbol = new_symbol
            self._insert(lot)
        return len(lots)
