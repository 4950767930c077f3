from __future__ import annotations

import datetime as dt
from dataclasses import dataclass

from brokertax.currency import Cash

from .rates import Country, IncomeType


@dataclass(frozen=True)
class Tax:
    expected: Cash
    paid: Cash
    to_pay: Cash


class TaxCalculator:
    """Per-income tax with prior payments (e.g. dividend tax withheld at source)."""

    def __init__(self, country: Country) -> None:
        self.country = country

    def add_income(
        self,
        income_type: IncomeType,
        date: dt.date,
        income: Cash,
        paid_tax: Cash | None = None,
    ) -> Tax:
        return Tax(
            expected=self.country.tax_to_pay(income_type, date.year, income),
            paid=paid_tax if paid_tax is not None else self.country.zero(),
            to_pay=self.country.tax_to_pay(income_type, date.year, income, paid_tax),
        )

    def add_tax_agent_income(
        self, income_type: IncomeType, date: dt.date, income: Cash, paid_tax: Cash
    ) -> Tax:
        # The tax agent has already withheld everything that is due
        return Tax(expected=paid_tax, paid=paid_tax, to_pay=self.country.zero())
