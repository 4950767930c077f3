"""Long-term ownership (LTO) tax exemption.

Profit from securities acquired since 2014 and held for at least three full
years is exempt from the trading tax, up to a yearly limit of 3M roubles per
year of ownership. When several sales contribute, the multiplier is the
profit-weighted average of their ownership years.
"""

from __future__ import annotations

import datetime as dt
import logging
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal

from brokertax.currency import round_money

logger = logging.getLogger(__name__)

LTO_MIN_YEARS = 3
LTO_MIN_BUY_DATE = dt.date(2014, 1, 1)
LTO_YEARLY_LIMIT = Decimal("3000000")


def calculate_ownership_years(buy_date: dt.date, sell_date: dt.date) -> int:
    """Whole years of ownership.

    A Feb 29 purchase completes a year on the last day of the next February.
    """
    if buy_date > sell_date:
        raise ValueError(f"Buy date {buy_date} is after sell date {sell_date}")

    years = sell_date.year - buy_date.year
    if sell_date.month < buy_date.month:
        years -= 1
    elif sell_date.month == buy_date.month:
        last_day_of_month = (sell_date + dt.timedelta(days=1)).month != sell_date.month
        if sell_date.day < buy_date.day and not last_day_of_month:
            years -= 1
    return years


def is_lto_eligible(buy_date: dt.date, sell_date: dt.date) -> tuple[bool, int]:
    years = calculate_ownership_years(buy_date, sell_date)
    return buy_date >= LTO_MIN_BUY_DATE and years >= LTO_MIN_YEARS, years


@dataclass(frozen=True)
class LtoDeductibleProfit:
    profit: Decimal
    years: int


@dataclass(frozen=True)
class LtoDeduction:
    deduction: Decimal
    limit: Decimal
    loss: Decimal


class LtoDeductionCalculator:
    def __init__(self) -> None:
        self.profit = Decimal("0")
        self.weighted_profit = Decimal("0")

    def add(self, profit: Decimal, years: int) -> None:
        if profit <= 0:
            raise ValueError(f"LTO deductible profit must be positive: {profit}")
        if years < LTO_MIN_YEARS:
            raise ValueError(f"LTO requires at least {LTO_MIN_YEARS} years of ownership: {years}")

        self.profit += profit
        self.weighted_profit += profit * years

    def calculate(self) -> LtoDeduction:
        if self.profit.is_zero():
            zero = Decimal("0")
            return LtoDeduction(deduction=zero, limit=zero, loss=zero)

        limit = round_money(self.weighted_profit / self.profit * LTO_YEARLY_LIMIT)
        deduction = min(self.profit, limit)
        return LtoDeduction(deduction=deduction, limit=limit, loss=self.profit - deduction)


@dataclass(frozen=True)
class NetLtoDeduction:
    deduction: Decimal
    limit: Decimal
    applied: Decimal
    applied_above_limit: Decimal
    loss: Decimal


class NetLtoDeductionCalculator:
    """Tracks computed vs. actually applied LTO deductions per tax year."""

    def __init__(self) -> None:
        self._calculators: defaultdict[int, LtoDeductionCalculator] = defaultdict(
            LtoDeductionCalculator
        )
        self._applied: defaultdict[int, Decimal] = defaultdict(Decimal)
        self._loss: defaultdict[int, Decimal] = defaultdict(Decimal)

    def add_profit(self, tax_year: int, profit: Decimal, years: int) -> None:
        self._calculators[tax_year].add(profit, years)

    def add_applied_deduction(self, tax_year: int, deduction: Decimal, loss: Decimal) -> None:
        self._applied[tax_year] += deduction
        self._loss[tax_year] += loss

    def calculate(self) -> dict[int, NetLtoDeduction]:
        result: dict[int, NetLtoDeduction] = {}

        for tax_year in sorted(set(self._calculators) | set(self._applied)):
            computed = self._calculators[tax_year].calculate()
            applied = self._applied[tax_year]
            applied_above_limit = max(Decimal("0"), applied - computed.deduction)
            loss = max(computed.loss, self._loss[tax_year])

            if applied_above_limit:
                logger.warning(
                    "%d: applied LTO deduction %s exceeds the calculated one (%s) by %s",
                    tax_year,
                    applied,
                    computed.deduction,
                    applied_above_limit,
                )
            if loss:
                logger.warning(
                    "%d: %s of LTO-eligible profit exceeds the deduction limit (%s)",
                    tax_year,
                    loss,
                    computed.limit,
                )

            result[tax_year] = NetLtoDeduction(
                deduction=computed.deduction,
                limit=computed.limit,
                applied=applied,
                applied_above_limit=applied_above_limit,
                loss=loss,
            )

        return result
