from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Union

from brokertax.currency import Cash, CurrencyConverter
from brokertax.errors import UnsupportedJurisdiction, with_context
from brokertax.taxes import (
    Country,
    Day,
    Jurisdiction,
    NetLtoDeduction,
    NetLtoDeductionCalculator,
    NetTax,
    NetTaxCalculator,
    OnClose,
    TaxExemption,
    TaxPaymentDay,
    validate_tax_exemptions,
)

from .domain import (
    CorporateAction,
    FifoDetails,
    SellDetails,
    SellSource,
    StockBuy,
    StockSell,
)
from .events import WarningRecorder
from .fees import Fee
from .fifo import FifoMatcher
from .sell_calc import calculate_sell, sell_error_context
from .statement import BrokerStatement

logger = logging.getLogger(__name__)

# Same-day ordering: corporate actions first, then buys, then sells
_ACTION, _BUY, _SELL = 0, 1, 2

Event = Union[CorporateAction, StockBuy, StockSell]


@dataclass
class TradeRow:
    trade: StockSell
    name: str
    tax_year: int
    tax_payment_date: dt.date
    details: SellDetails

    @property
    def symbol(self) -> str:
        return self.trade.symbol


@dataclass
class FifoRow:
    sell_symbol: str
    sell_date: dt.date
    details: FifoDetails


@dataclass
class FeeRow:
    fee: Fee
    tax_year: int
    local_amount: Cash


@dataclass
class YearTotals:
    """Sums of per-trade figures in the local currency."""

    tax_year: int
    local_revenue: Cash
    total_local_cost: Cash
    local_profit: Cash
    taxable_local_profit: Cash
    lto_deduction: Cash
    tax_to_pay: Cash
    tax_deduction: Cash
    fees: Cash
    trades: int = 0

    @classmethod
    def empty(cls, tax_year: int, country: Country) -> YearTotals:
        zero = country.zero()
        return cls(tax_year, zero, zero, zero, zero, zero, zero, zero, zero)

    def add_sell(self, details: SellDetails) -> None:
        self.trades += 1
        self.local_revenue += details.local_revenue
        self.total_local_cost += details.total_local_cost
        self.local_profit += details.local_profit
        self.taxable_local_profit += details.taxable_local_profit
        self.lto_deduction += details.lto_deduction
        self.tax_to_pay += details.tax_to_pay
        self.tax_deduction += details.tax_deduction

    def add_fee(self, local_amount: Cash) -> None:
        self.fees += local_amount
        self.local_profit -= local_amount
        self.taxable_local_profit -= local_amount

    def merge(self, other: YearTotals) -> None:
        self.trades += other.trades
        self.local_revenue += other.local_revenue
        self.total_local_cost += other.total_local_cost
        self.local_profit += other.local_profit
        self.taxable_local_profit += other.taxable_local_profit
        self.lto_deduction += other.lto_deduction
        self.tax_to_pay += other.tax_to_pay
        self.tax_deduction += other.tax_deduction
        self.fees += other.fees


@dataclass(frozen=True)
class StockIncome:
    """A tax statement entry for the income from a sale."""

    description: str
    date: dt.date
    currency: str
    rate: Decimal
    revenue: Decimal
    local_revenue: Decimal
    cost: Decimal


@dataclass
class TradesSummary:
    currency: str
    year: Optional[int]
    trades: list[TradeRow] = field(default_factory=list)
    fifo: list[FifoRow] = field(default_factory=list)
    fees: list[FeeRow] = field(default_factory=list)
    years: dict[int, YearTotals] = field(default_factory=dict)
    total: Optional[YearTotals] = None
    net_taxes: dict[dt.date, NetTax] = field(default_factory=dict)
    lto_deductions: dict[int, NetLtoDeduction] = field(default_factory=dict)
    tax_statement: Optional[list[StockIncome]] = None
    # None when the tax can't be attributed to the reported period
    total_tax_to_pay: Optional[Cash] = None
    total_tax_deduction: Optional[Cash] = None


def _event_key(item: tuple[int, Event]) -> tuple:
    index, event = item
    if isinstance(event, StockSell):
        return (event.conclusion_date, _SELL, event.execution_date, index)
    if isinstance(event, StockBuy):
        return (event.conclusion_date, _BUY, event.execution_date, index)
    return (event.date, _ACTION, event.date, index)


class TradesProcessor:
    """Run a statement through FIFO matching and the tax rules of a jurisdiction.

    FIFO always runs over the whole history; the year filter only selects which
    sells and fees are reported (by execution date).
    """

    def __init__(
        self,
        jurisdiction: Jurisdiction,
        tax_payment_day: TaxPaymentDay,
        converter: CurrencyConverter,
        *,
        country: Optional[Country] = None,
        tax_exemptions: Sequence[TaxExemption] = (),
        recorder: Optional[WarningRecorder] = None,
    ) -> None:
        validate_tax_exemptions(jurisdiction, tax_exemptions)

        self.jurisdiction = jurisdiction
        self.country = country or jurisdiction.country()
        self.tax_payment_day = tax_payment_day
        self.converter = converter
        self.tax_exemptions = tuple(tax_exemptions)
        self.recorder = recorder or WarningRecorder()

    def process(
        self,
        statement: BrokerStatement,
        year: Optional[int] = None,
        tax_statement: bool = False,
    ) -> TradesSummary:
        summary = TradesSummary(currency=self.country.currency, year=year)
        net_taxes = NetTaxCalculator(self.country, self.tax_payment_day)
        net_lto = NetLtoDeductionCalculator()
        matcher = FifoMatcher()

        events: list[Event] = [
            *statement.corporate_actions,
            *statement.buys,
            *statement.sells,
        ]
        ordered = [event for _, event in sorted(enumerate(events), key=_event_key)]

        fees = sorted(statement.broker.fee_filter(statement.fees), key=lambda f: f.date)
        fee_pos = 0

        for event in ordered:
            event_date = _event_key((0, event))[0]
            while fee_pos < len(fees) and fees[fee_pos].date <= event_date:
                self._process_fee(summary, net_taxes, fees[fee_pos], year)
                fee_pos += 1

            if isinstance(event, StockBuy):
                matcher.ingest_buy(event)
            elif isinstance(event, StockSell):
                sources = matcher.ingest_sell(event)
                if year is not None and event.execution_date.year != year:
                    continue
                self._process_sell(summary, net_taxes, net_lto, statement, event, sources)
            else:
                matcher.ingest_corporate_action(event)

        for fee in fees[fee_pos:]:
            self._process_fee(summary, net_taxes, fee, year)

        summary.net_taxes = net_taxes.get_taxes()
        for net_tax in summary.net_taxes.values():
            if net_tax.lto_deduction.is_zero() and net_tax.lto_loss.is_zero():
                continue
            net_lto.add_applied_deduction(
                net_tax.tax_year, net_tax.lto_deduction.amount, net_tax.lto_loss.amount
            )
        summary.lto_deductions = net_lto.calculate()
        for tax_year, lto in summary.lto_deductions.items():
            if lto.applied_above_limit:
                self.recorder.record(
                    "lto-applied-above-limit",
                    f"{tax_year}: applied LTO deduction exceeds the calculated one by "
                    f"{self.country.cash(lto.applied_above_limit)}",
                )
            if lto.loss:
                self.recorder.record(
                    "lto-loss",
                    f"{tax_year}: {self.country.cash(lto.loss)} of LTO-eligible profit "
                    f"exceeds the deduction limit",
                )

        total = YearTotals.empty(0, self.country)
        for tax_year in sorted(summary.years):
            total.merge(summary.years[tax_year])
        summary.total = total

        self._calculate_total_tax(summary, year)
        self._check_tax_agent(summary, statement)

        if tax_statement:
            summary.tax_statement = self._build_tax_statement(summary, statement)

        logger.info(
            "Processed %d sell(s) and %d fee(s) of %s statement",
            len(summary.trades),
            len(summary.fees),
            statement.broker.name,
        )
        return summary

    def _year_totals(self, summary: TradesSummary, tax_year: int) -> YearTotals:
        totals = summary.years.get(tax_year)
        if totals is None:
            totals = summary.years[tax_year] = YearTotals.empty(tax_year, self.country)
        return totals

    def _process_sell(
        self,
        summary: TradesSummary,
        net_taxes: NetTaxCalculator,
        net_lto: NetLtoDeductionCalculator,
        statement: BrokerStatement,
        trade: StockSell,
        sources: list[SellSource],
    ) -> None:
        try:
            tax_year, tax_payment_date = self.tax_payment_day.get(
                trade.execution_date, trading=True
            )
        except ValueError as e:
            raise with_context(e, sell_error_context(trade)) from e

        details = calculate_sell(
            trade, sources, self.country, tax_year, self.tax_exemptions, self.converter
        )

        lto_deductibles = details.lto_deductibles
        for deductible in lto_deductibles:
            net_lto.add_profit(tax_year, deductible.profit, deductible.years)

        net_taxes.add_profit(
            trade.execution_date,
            details.local_profit,
            details.taxable_local_profit_before_lto,
            lto_deductibles,
        )
        self._year_totals(summary, tax_year).add_sell(details)

        summary.trades.append(
            TradeRow(
                trade=trade,
                name=statement.get_instrument_name(trade.symbol),
                tax_year=tax_year,
                tax_payment_date=tax_payment_date,
                details=details,
            )
        )
        summary.fifo.extend(
            FifoRow(trade.symbol, trade.conclusion_date, fifo) for fifo in details.fifo
        )

        logger.debug(
            "%s sell on %s: profit %s, taxable %s, tax %s",
            trade.symbol,
            trade.conclusion_date,
            details.local_profit,
            details.taxable_local_profit,
            details.tax_to_pay,
        )

    def _process_fee(
        self,
        summary: TradesSummary,
        net_taxes: NetTaxCalculator,
        fee: Fee,
        year: Optional[int],
    ) -> None:
        if year is not None and fee.date.year != year:
            return

        tax_year, _ = self.tax_payment_day.get(fee.date, trading=True)
        local_amount = self.converter.convert_to_cash_rounding(
            fee.date, fee.amount, self.country.currency
        )

        net_taxes.add_profit(fee.date, -local_amount, -local_amount)
        self._year_totals(summary, tax_year).add_fee(local_amount)
        summary.fees.append(FeeRow(fee=fee, tax_year=tax_year, local_amount=local_amount))

    def _calculate_total_tax(self, summary: TradesSummary, year: Optional[int]) -> None:
        tax_to_pay = self.country.zero()
        tax_deduction = self.country.zero()
        for net_tax in summary.net_taxes.values():
            tax_to_pay += net_tax.tax_to_pay
            tax_deduction += net_tax.tax_deduction

        # A fixed payment day needs a single reported year; an on-close
        # account needs the whole history.
        spec = self.tax_payment_day.spec
        if (isinstance(spec, Day) and year is not None) or (
            isinstance(spec, OnClose) and year is None
        ):
            summary.total_tax_to_pay = tax_to_pay
        summary.total_tax_deduction = tax_deduction

    def _check_tax_agent(self, summary: TradesSummary, statement: BrokerStatement) -> None:
        for net_tax in summary.net_taxes.values():
            withheld = statement.tax_agent_withholdings.get(net_tax.tax_year)
            if withheld is None:
                continue

            local_withheld = withheld.round()
            self.country.zero().ensure_same_currency(local_withheld)
            if local_withheld != net_tax.tax_to_pay:
                self.recorder.warn(
                    "tax-agent",
                    f"{net_tax.tax_year}: {statement.broker.name} withheld {local_withheld} "
                    f"of trading tax while the calculated tax is {net_tax.tax_to_pay}",
                )

    def _build_tax_statement(
        self, summary: TradesSummary, statement: BrokerStatement
    ) -> Optional[list[StockIncome]]:
        if not self.jurisdiction.supports_tax_statement:
            error = UnsupportedJurisdiction(self.jurisdiction.title, "Tax statement generation")
            self.recorder.warn("unsupported-jurisdiction", f"{error}; the statement is omitted")
            return None

        entries = []
        for row in summary.trades:
            trade, details = row.trade, row.details
            rate = self.converter.precise_currency_rate(
                trade.execution_date, details.revenue.currency, self.country.currency
            )
            entries.append(
                StockIncome(
                    description=f"{statement.broker.name}: Продажа {row.name}",
                    date=trade.execution_date,
                    currency=details.revenue.currency,
                    rate=rate,
                    revenue=details.revenue.amount,
                    local_revenue=details.local_revenue.amount,
                    cost=details.total_local_cost.amount,
                )
            )
        return entries
