from __future__ import annotations

import datetime as dt
import logging
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from brokertax.currency import Cash

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Fee:
    date: dt.date
    amount: Cash  # positive when charged, negative for refunds
    description: str = ""


class FeeFilter(Protocol):
    def __call__(self, fees: Sequence[Fee]) -> list[Fee]:  # returns fees to report
        ...


class KeepAllFees:
    def __call__(self, fees: Sequence[Fee]) -> list[Fee]:
        return list(fees)


class SuppressFeeReversals:
    """Drop same-day pairs of a fee and its equal and opposite reversal.

    Some brokers charge a fee and cancel it on the same day; both entries are
    noise for the report. Unpaired refunds are kept.
    """

    def __call__(self, fees: Sequence[Fee]) -> list[Fee]:
        suppressed: set[int] = set()
        by_day: dict[tuple[dt.date, str], list[int]] = defaultdict(list)
        for i, fee in enumerate(fees):
            by_day[(fee.date, fee.amount.currency)].append(i)

        for indices in by_day.values():
            for pos, i in enumerate(indices):
                if i in suppressed or not fees[i].amount.is_negative():
                    continue
                reversal = fees[i].amount
                for j in indices[:pos] + indices[pos + 1 :]:
                    if j not in suppressed and fees[j].amount == -reversal:
                        suppressed.update((i, j))
                        logger.debug(
                            "Suppressing %s fee reversal on %s (%s)",
                            -reversal,
                            fees[i].date,
                            fees[j].description,
                        )
                        break

        return [fee for i, fee in enumerate(fees) if i not in suppressed]
