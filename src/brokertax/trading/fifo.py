from __future__ import annotations

import logging
from typing import Optional

from brokertax.currency import Cash
from brokertax.errors import InsufficientLots

from .domain import (
    BuyLot,
    CorporateAction,
    SellSource,
    SpinOff,
    StockBuy,
    StockSell,
    StockSource,
    StockSplit,
    SymbolRename,
)
from .positions import PositionBook

logger = logging.getLogger(__name__)


class FifoMatcher:
    """Match sells against the oldest open lots of the same symbol."""

    def __init__(self, *, positions: Optional[PositionBook] = None) -> None:
        self.positions = positions or PositionBook()

    def ingest_buy(self, trade: StockBuy) -> None:
        if trade.quantity <= 0:
            raise ValueError(
                f"{trade.symbol} buy on {trade.conclusion_date} must have positive quantity"
            )
        cost = trade.cost
        self.positions.append_buy(
            BuyLot(
                symbol=trade.symbol,
                conclusion_date=trade.conclusion_date,
                execution_date=trade.execution_date,
                quantity=trade.quantity,
                price=trade.price,
                volume=cost,
                commission=trade.commission,
                source=trade.source,
            )
        )

    def ingest_sell(self, trade: StockSell) -> list[SellSource]:
        if trade.quantity <= 0:
            raise ValueError(
                f"{trade.symbol} sell on {trade.conclusion_date} must have positive quantity"
            )

        available = self.positions.open_quantity(trade.symbol)
        if available < trade.quantity:
            raise InsufficientLots(
                trade.symbol, trade.conclusion_date, trade.quantity - available
            )

        sources, qty_remaining = self.positions.consume_fifo(trade.symbol, trade.quantity)
        assert qty_remaining == 0

        logger.debug(
            "%s sell of %s on %s matched against %d lot(s)",
            trade.symbol,
            trade.quantity,
            trade.conclusion_date,
            len(sources),
        )
        return sources

    def ingest_corporate_action(self, action: CorporateAction) -> None:
        if isinstance(action, StockSplit):
            changed = self.positions.split(action.symbol, action.date, action.ratio)
            logger.debug(
                "%s split %s on %s applied to %d lot(s)",
                action.symbol,
                action.ratio,
                action.date,
                changed,
            )
        elif isinstance(action, SymbolRename):
            moved = self.positions.rename(action.old_symbol, action.new_symbol)
            logger.debug(
                "%s renamed to %s on %s (%d lot(s))",
                action.old_symbol,
                action.new_symbol,
                action.date,
                moved,
            )
        elif isinstance(action, SpinOff):
            if action.quantity <= 0:
                raise ValueError(
                    f"{action.new_symbol} spin-off from {action.symbol} on {action.date} "
                    "must have positive quantity"
                )
            self.ingest_buy(
                StockBuy(
                    symbol=action.new_symbol,
                    quantity=action.quantity,
                    price=action.cost / action.quantity,
                    commission=Cash.zero(action.cost.currency),
                    conclusion_date=action.date,
                    execution_date=action.date,
                    source=StockSource.CORPORATE_ACTION,
                    volume=action.cost,
                )
            )
        else:
            raise ValueError(f"Unsupported corporate action: {action!r}")
