from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from brokertax.currency import Cash

from .long_term_ownership import LtoDeductibleProfit, LtoDeductionCalculator
from .payment_day import TaxPaymentDay
from .rates import Country, IncomeType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NetTax:
    tax_year: int
    tax_payment_date: dt.date
    tax_to_pay: Cash
    tax_deduction: Cash
    lto_deduction: Cash
    lto_loss: Cash


@dataclass
class _NetProfit:
    total: Cash
    taxable: Cash
    lto: LtoDeductionCalculator = field(default_factory=LtoDeductionCalculator)


class NetTaxCalculator:
    """Trading tax on the net profit of a tax year rather than per trade.

    Losses of one sale offset profits of another within the same payment
    bucket, and the LTO limit is applied once per bucket.
    """

    def __init__(self, country: Country, tax_payment_day: TaxPaymentDay) -> None:
        self.country = country
        self.tax_payment_day = tax_payment_day
        self._profit: dict[tuple[int, dt.date], _NetProfit] = {}

    def add_profit(
        self,
        date: dt.date,
        total: Cash,
        taxable: Cash,
        lto_deductibles: Iterable[LtoDeductibleProfit] = (),
    ) -> None:
        key = self.tax_payment_day.get(date, trading=True)

        net_profit = self._profit.get(key)
        if net_profit is None:
            net_profit = self._profit[key] = _NetProfit(
                total=self.country.zero(), taxable=self.country.zero()
            )

        net_profit.total += total.round()
        net_profit.taxable += taxable.round()

        for deductible in lto_deductibles:
            net_profit.lto.add(deductible.profit, deductible.years)

    def get_taxes(self) -> dict[dt.date, NetTax]:
        taxes: dict[dt.date, NetTax] = {}
        tax_years: set[int] = set()

        for (tax_year, tax_payment_date), profit in sorted(self._profit.items()):
            assert tax_year not in tax_years, f"Several tax payment dates for {tax_year}"
            tax_years.add(tax_year)

            lto = profit.lto.calculate()
            lto_deduction = self.country.cash(lto.deduction)
            lto_loss = self.country.cash(lto.loss)

            tax_to_pay = self.country.tax_to_pay(
                IncomeType.TRADING, tax_year, profit.taxable - lto_deduction
            )
            tax_without_deduction = self.country.tax_to_pay(
                IncomeType.TRADING, tax_year, profit.total
            )
            tax_deduction = max(tax_without_deduction - tax_to_pay, self.country.zero())

            logger.debug(
                "%d: net profit %s (taxable %s), tax %s, deduction %s",
                tax_year,
                profit.total,
                profit.taxable,
                tax_to_pay,
                tax_deduction,
            )
            taxes[tax_payment_date] = NetTax(
                tax_year=tax_year,
                tax_payment_date=tax_payment_date,
                tax_to_pay=tax_to_pay,
                tax_deduction=tax_deduction,
                lto_deduction=lto_deduction,
                lto_loss=lto_loss,
            )

        return taxes
