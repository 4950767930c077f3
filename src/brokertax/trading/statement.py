from __future__ import annotations

import csv
import datetime as dt
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from fractions import Fraction
from pathlib import Path

from brokertax.conv import parse_date, to_dec_strict
from brokertax.currency import Cash
from brokertax.localities import is_valid_execution_date

from .domain import (
    CorporateAction,
    SpinOff,
    StockBuy,
    StockSell,
    StockSplit,
    SymbolRename,
)
from .fees import Fee, FeeFilter, KeepAllFees

logger = logging.getLogger(__name__)

STATEMENT_COLS = [
    "kind",
    "date",
    "execution_date",
    "symbol",
    "new_symbol",
    "quantity",
    "price",
    "currency",
    "commission",
    "volume",
    "ratio",
    "description",
]

NEED_STATEMENT_COLS = ["kind", "date"]


@dataclass
class BrokerInfo:
    name: str
    fee_filter: FeeFilter = field(default_factory=KeepAllFees)


@dataclass
class BrokerStatement:
    broker: BrokerInfo
    buys: list[StockBuy] = field(default_factory=list)
    sells: list[StockSell] = field(default_factory=list)
    corporate_actions: list[CorporateAction] = field(default_factory=list)
    fees: list[Fee] = field(default_factory=list)
    # Tax withheld by the broker acting as a tax agent, per tax year
    tax_agent_withholdings: dict[int, Cash] = field(default_factory=dict)
    instrument_names: dict[str, str] = field(default_factory=dict)

    def get_instrument_name(self, symbol: str) -> str:
        name = self.instrument_names.get(symbol)
        return f"{name} ({symbol})" if name else symbol

    def merge(self, other: BrokerStatement) -> None:
        self.buys.extend(other.buys)
        self.sells.extend(other.sells)
        self.corporate_actions.extend(other.corporate_actions)
        self.fees.extend(other.fees)
        for year, amount in other.tax_agent_withholdings.items():
            withheld = self.tax_agent_withholdings.get(year)
            self.tax_agent_withholdings[year] = amount if withheld is None else withheld + amount
        self.instrument_names.update(other.instrument_names)

    def validate(self) -> None:
        """Reject trades that can't be settled as stated.

        Execution before conclusion is an error; execution outside of the
        regular T+2 window is suspicious but happens (OTC, transfers).
        """
        for trade in [*self.buys, *self.sells]:
            if trade.execution_date < trade.conclusion_date:
                raise ValueError(
                    f"{trade.symbol} trade concluded on {trade.conclusion_date} "
                    f"is executed earlier ({trade.execution_date})"
                )
            if not is_valid_execution_date(trade.conclusion_date, trade.execution_date):
                logger.warning(
                    "%s trade concluded on %s has unexpected execution date: %s",
                    trade.symbol,
                    trade.conclusion_date,
                    trade.execution_date,
                )


def _optional_cash(row: dict[str, str], column: str) -> Cash | None:
    value = (row.get(column) or "").strip()
    if not value:
        return None
    currency = (row.get("currency") or "").strip()
    if not currency:
        raise ValueError("Missing 'currency'")
    return Cash(currency, to_dec_strict(value)).normalize_currency()


def _cash(row: dict[str, str], column: str) -> Cash:
    cash = _optional_cash(row, column)
    if cash is None:
        raise ValueError(f"Missing {column!r}")
    return cash


def _required(row: dict[str, str], column: str) -> str:
    value = (row.get(column) or "").strip()
    if not value:
        raise ValueError(f"Missing {column!r}")
    return value


def _execution_date(row: dict[str, str], date: dt.date) -> dt.date:
    value = (row.get("execution_date") or "").strip()
    return parse_date(value) if value else date


def _parse_row(statement: BrokerStatement, row: dict[str, str]) -> None:
    kind = row["kind"].strip().lower()
    symbol = (row.get("symbol") or "").strip()
    if kind == "instrument":
        statement.instrument_names[symbol] = (row.get("description") or "").strip()
        return

    date = parse_date(row.get("date") or "")
    if kind in ("buy", "sell"):
        price = _cash(row, "price")
        commission = _optional_cash(row, "commission") or Cash.zero(price.currency)
        trade_cls = StockBuy if kind == "buy" else StockSell
        statement_list = statement.buys if kind == "buy" else statement.sells
        statement_list.append(
            trade_cls(
                symbol=symbol,
                quantity=to_dec_strict(row.get("quantity")),
                price=price,
                commission=commission,
                conclusion_date=date,
                execution_date=_execution_date(row, date),
                volume=_optional_cash(row, "volume"),
            )
        )
    elif kind == "split":
        statement.corporate_actions.append(
            StockSplit(date=date, symbol=symbol, ratio=Fraction(_required(row, "ratio")))
        )
    elif kind == "rename":
        statement.corporate_actions.append(
            SymbolRename(
                date=date, old_symbol=symbol, new_symbol=_required(row, "new_symbol")
            )
        )
    elif kind == "spinoff":
        cost = _optional_cash(row, "volume")
        if cost is None:
            cost = Cash.zero(_required(row, "currency"))
        statement.corporate_actions.append(
            SpinOff(
                date=date,
                symbol=symbol,
                new_symbol=_required(row, "new_symbol"),
                quantity=to_dec_strict(row.get("quantity")),
                cost=cost,
            )
        )
    elif kind == "fee":
        amount = _cash(row, "volume")
        statement.fees.append(
            Fee(date=date, amount=amount, description=(row.get("description") or "").strip())
        )
    elif kind == "tax-agent":
        amount = _cash(row, "volume")
        withheld = statement.tax_agent_withholdings.get(date.year)
        statement.tax_agent_withholdings[date.year] = (
            amount if withheld is None else withheld + amount
        )
    else:
        raise ValueError(f"Unknown statement record kind: {kind!r}")


def load_statement_csv(path: str | Path, broker: BrokerInfo) -> BrokerStatement:
    """Read a normalized statement CSV (one record per row, see STATEMENT_COLS).

    Record kinds: buy, sell, split, rename, spinoff, fee, tax-agent and
    instrument. Money columns share the row's ``currency``.
    """
    statement = BrokerStatement(broker=broker)
    counts: dict[str, int] = defaultdict(int)

    with open(path, encoding="utf-8", newline="") as fp:
        reader = csv.DictReader(fp)
        missing = set(NEED_STATEMENT_COLS) - set(reader.fieldnames or [])
        if missing:
            raise ValueError(f"Statement {path} missing columns: {sorted(missing)}")

        for line_no, row in enumerate(reader, start=2):
            if not (row.get("kind") or "").strip():
                continue
            try:
                _parse_row(statement, row)
            except (ValueError, ArithmeticError) as e:
                raise ValueError(f"{path}:{line_no}: invalid statement record: {e}") from e
            counts[row["kind"].strip().lower()] += 1

    logger.info(
        "Loaded %s statement from %s: %s",
        broker.name,
        path,
        ", ".join(f"{n} {kind}" for kind, n in sorted(counts.items())) or "no records",
    )
    statement.validate()
    return statement

