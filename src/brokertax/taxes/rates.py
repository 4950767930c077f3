from __future__ import annotations

import bisect
import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal

from brokertax.currency import Cash, round_money, round_to


class IncomeType(enum.Enum):
    TRADING = "trading"
    DIVIDENDS = "dividends"
    INTEREST = "interest"


# Russian tax rounding rules:
# 1. All calculations are done with kopecks precision.
# 2. Foreign income is rounded to cents, converted with the precise rate
#    (65.4244 for example) and rounded to kopecks.
# 3. Tax has rouble precision, but is rounded twice: to kopecks first, then to
#    roubles. The official declaration software computes tax for $10.64 at
#    65.4244 as round(round(696.12 * 0.13, 2), 0) = 91 (90.4956 unrounded).
def round_tax(tax: Decimal, precision: int) -> Decimal:
    return round_to(round_money(tax), precision)


@dataclass
class Country:
    """Tax rules of a jurisdiction: local currency, rates and tax precision.

    Rates are fractions. Per-income-type tables map a year to the rate that is
    effective from that year until superseded.
    """

    currency: str
    default_tax_rate: Decimal
    tax_precision: int
    tax_rates: dict[IncomeType, dict[int, Decimal]] = field(default_factory=dict)

    @classmethod
    def from_percents(
        cls,
        currency: str,
        default_tax_rate: Decimal,
        tax_precision: int,
        tax_rates: Mapping[IncomeType, Mapping[int, Decimal]] | None = None,
    ) -> Country:
        hundred = Decimal("100")
        rates = {
            income_type: {year: rate / hundred for year, rate in table.items()}
            for income_type, table in (tax_rates or {}).items()
        }
        return cls(currency, default_tax_rate / hundred, tax_precision, rates)

    def cash(self, amount: Decimal) -> Cash:
        return Cash(self.currency, amount)

    def zero(self) -> Cash:
        return Cash.zero(self.currency)

    def round_tax(self, tax: Cash) -> Cash:
        self.zero().ensure_same_currency(tax)
        return Cash(self.currency, round_tax(tax.amount, self.tax_precision))

    def tax_rate(self, income_type: IncomeType, year: int) -> Decimal:
        table = self.tax_rates.get(income_type)
        if table:
            years = sorted(table)
            pos = bisect.bisect_right(years, year)
            if pos:
                return table[years[pos - 1]]
        return self.default_tax_rate

    def tax_to_pay(
        self,
        income_type: IncomeType,
        year: int,
        income: Cash,
        paid_tax: Cash | None = None,
    ) -> Cash:
        """Tax due for the income, less tax already paid (never negative)."""
        self.zero().ensure_same_currency(income)

        income = income.round()
        if not income.is_positive():
            return self.zero()

        tax_to_pay = self.round_tax(income * self.tax_rate(income_type, year))
        if paid_tax is None:
            return tax_to_pay

        if paid_tax.is_negative():
            raise ValueError(f"Paid tax can't be negative: {paid_tax}")
        tax_deduction = self.round_tax(paid_tax)

        if tax_deduction < tax_to_pay:
            return tax_to_pay - tax_deduction
        return self.zero()

    def deduce_income(self, income_type: IncomeType, year: int, result_income: Cash) -> Cash:
        """Reconstruct gross income from the amount left after tax."""
        self.zero().ensure_same_currency(result_income)
        rate = self.tax_rate(income_type, year)
        return (result_income / (Decimal("1") - rate)).round()


class Jurisdiction(enum.Enum):
    RUSSIA = "russia"
    USA = "usa"

    @property
    def title(self) -> str:
        return {Jurisdiction.RUSSIA: "Russia", Jurisdiction.USA: "USA"}[self]

    @property
    def currency(self) -> str:
        return {Jurisdiction.RUSSIA: "RUB", Jurisdiction.USA: "USD"}[self]

    @property
    def tax_precision(self) -> int:
        return {Jurisdiction.RUSSIA: 0, Jurisdiction.USA: 2}[self]

    @property
    def supports_tax_statement(self) -> bool:
        return self is Jurisdiction.RUSSIA

    def country(
        self,
        trading: Mapping[int, Decimal] | None = None,
        dividends: Mapping[int, Decimal] | None = None,
        interest: Mapping[int, Decimal] | None = None,
    ) -> Country:
        """Build the Country, optionally overriding rate tables (in percents)."""
        if self is Jurisdiction.RUSSIA:
            return Country.from_percents(
                self.currency,
                Decimal("13"),
                self.tax_precision,
                {
                    IncomeType.TRADING: trading or {},
                    IncomeType.DIVIDENDS: dividends or {},
                    IncomeType.INTEREST: interest or {},
                },
            )

        tables: dict[IncomeType, Mapping[int, Decimal]] = {
            IncomeType.DIVIDENDS: dividends or {0: Decimal("10")},
        }
        if trading:
            tables[IncomeType.TRADING] = trading
        if interest:
            tables[IncomeType.INTEREST] = interest
        return Country.from_percents(
            self.currency, Decimal("0"), self.tax_precision, tables
        )
