from __future__ import annotations

import bisect
import csv
import datetime as dt
import logging
from collections import defaultdict
from decimal import Decimal
from pathlib import Path

from brokertax.conv import date_key, to_dec_strict

logger = logging.getLogger(__name__)


def min_rate_date(date: dt.date) -> dt.date:
    """Oldest date whose rate may stand in for a missing rate on ``date``.

    Central banks don't publish rates on weekends and holidays; the longest
    gaps are the New Year and the March/May holidays.
    """
    if date.month == 1 and date.day < 10:
        return dt.date(date.year - 1, 12, 30)
    if date.month in (3, 5) and date.day < 13:
        return date - dt.timedelta(days=5)
    return date - dt.timedelta(days=3)


class FxTable:
    """Date-indexed rate table: (date, currency) -> base units per 1 unit.

    Accepted CSV schema:
      - date,currency,rate[,nominal]   # rate = base currency units per nominal units
    """

    def __init__(self, base_currency: str = "RUB"):
        self.base_currency = base_currency.upper()
        # Map: currency -> { date -> Decimal(base_per_unit) }, plus sorted date list
        self.data: dict[str, dict[str, Decimal]] = defaultdict(dict)
        self.date_index: dict[str, list[str]] = {}

    @classmethod
    def from_csv(cls, path: str | Path, base_currency: str = "RUB") -> FxTable:
        inst = cls(base_currency)
        with open(path, encoding="utf-8", newline="") as fp:
            reader = csv.DictReader(fp)
            fields = set(reader.fieldnames or [])
            missing = {"date", "currency", "rate"} - fields
            if missing:
                raise ValueError(f"FX table missing columns: {sorted(missing)}")

            for row in reader:
                d = date_key(row["date"])
                ccy = row["currency"].strip().upper()
                if not ccy:
                    raise ValueError(f"FX row missing currency for date {d}")

                rate = to_dec_strict(row["rate"])
                nominal = to_dec_strict(row.get("nominal") or "1")
                if rate <= 0 or nominal <= 0:
                    raise ValueError(
                        f"Encountered non-positive FX rate {rate}/{nominal} for {ccy} "
                        f"on {d}"
                    )
                inst.data[ccy][d] = rate / nominal

        inst.reindex()
        logger.debug(
            "Loaded %s rates for %d currencies from %s",
            inst.base_currency,
            len(inst.data),
            path,
        )
        return inst

    def add_rate(self, date: dt.date, currency: str, base_per_unit: Decimal) -> None:
        if base_per_unit <= 0:
            raise ValueError(
                f"Encountered non-positive FX rate {base_per_unit} for {currency} on {date}"
            )
        self.data[currency.upper()][date.isoformat()] = base_per_unit
        self.reindex()

    def reindex(self) -> None:
        for ccy, m in self.data.items():
            self.date_index[ccy] = sorted(m.keys())

    def get_rate(self, date: dt.date, currency: str) -> Decimal | None:
        """Return base currency units per 1 unit of currency.

        If the exact date isn't available, falls back to the nearest previous
        date not older than min_rate_date() (weekends/holidays).
        """
        c = currency.upper()
        if c == self.base_currency:
            return Decimal("1")
        if c not in self.data:
            return None
        d = date.isoformat()
        if d in self.data[c]:
            return self.data[c][d]

        dates = self.date_index[c]
        pos = bisect.bisect_right(dates, d)
        if pos == 0:
            return None
        candidate = dates[pos - 1]
        if candidate < min_rate_date(date).isoformat():
            return None
        return self.data[c][candidate]
