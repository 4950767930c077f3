from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass

from brokertax.localities import nearest_possible_account_close_date

from .rates import Jurisdiction

_DAY_RE = re.compile(r"^(?P<day>[0-9]+)\.(?P<month>[0-9]+)$")


@dataclass(frozen=True)
class Day:
    """Tax is paid on a fixed day of the year following the income."""

    month: int = 3
    day: int = 15


@dataclass(frozen=True)
class OnClose:
    """Trading tax is paid once, when the account is closed."""

    close_date: dt.date


TaxPaymentDaySpec = Day | OnClose


def parse_tax_payment_day_spec(value: str, today: dt.date | None = None) -> TaxPaymentDaySpec:
    """Parse 'on-close' or 'DD.MM' (29.02 is rejected: it doesn't exist every year)."""
    value = value.strip()
    if value == "on-close":
        return OnClose(nearest_possible_account_close_date(today))

    match = _DAY_RE.match(value)
    if match is not None:
        day, month = int(match["day"]), int(match["month"])
        try:
            dt.date(2001, month, day)
        except ValueError:
            pass
        else:
            return Day(month=month, day=day)

    raise ValueError(f"Invalid tax payment day: {value!r}")


class TaxPaymentDay:
    def __init__(self, jurisdiction: Jurisdiction, spec: TaxPaymentDaySpec | None = None) -> None:
        self.jurisdiction = jurisdiction
        self.spec = spec if spec is not None else Day()

    def get(self, income_date: dt.date, trading: bool) -> tuple[int, dt.date]:
        """Return the tax year and an approximate date when the tax is paid."""
        if isinstance(self.spec, OnClose):
            if income_date > self.spec.close_date:
                raise ValueError(
                    f"Income on {income_date} is after the account close date "
                    f"({self.spec.close_date})"
                )
            tax_year = self.spec.close_date.year if trading else income_date.year
        else:
            tax_year = income_date.year

        return tax_year, self.get_for(tax_year, trading)

    def get_for(self, tax_year: int, trading: bool) -> dt.date:
        spec = self.spec

        if isinstance(spec, OnClose):
            if tax_year > spec.close_date.year:
                raise ValueError(
                    f"Tax year {tax_year} is after the account close date ({spec.close_date})"
                )
            if trading:
                return spec.close_date
            return TaxPaymentDay(self.jurisdiction).get_for(tax_year, trading)

        month, day = spec.month, spec.day
        # Russian trading tax is due at the very start of the next year
        if trading and self.jurisdiction is Jurisdiction.RUSSIA:
            month, day = 1, 1
        return dt.date(tax_year + 1, month, day)
