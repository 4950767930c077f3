from __future__ import annotations

import datetime as dt
import re
from decimal import Decimal, InvalidOperation

NUM_CLEAN_RE = re.compile(r"[,\s]")  # remove thousands separators, spaces
RU_DATE_RE = re.compile(r"^(?P<day>\d{2})\.(?P<month>\d{2})\.(?P<year>\d{4})$")

_PLACEHOLDERS = {"-", "--", "—"}
_ELIDED = {"...", "N/A", "n/a"}


def to_dec_strict(s: str | float | int | Decimal | None) -> Decimal:
    """Convert statement numbers to Decimal.

    Raises ValueError on invalid/missing data. Use this for quantities, prices
    and rates where a silent zero would corrupt the cost basis.
    """
    if s is None:
        raise ValueError("Value is None")
    if isinstance(s, Decimal):
        return s
    if isinstance(s, (int, float)):
        return Decimal(str(s))

    s_stripped = s.strip()
    if not s_stripped:
        raise ValueError("Value is empty string")

    if s_stripped in _PLACEHOLDERS | _ELIDED:
        raise ValueError(f"Value is a placeholder: {s_stripped!r}")

    try:
        return Decimal(NUM_CLEAN_RE.sub("", s_stripped))
    except InvalidOperation as e:
        raise ValueError(f"Invalid decimal format: {s!r}") from e


def parse_date(d: str) -> dt.date:
    """Parse 'YYYY-MM-DD', 'YYYY-MM-DD, HH:MM:SS' or 'DD.MM.YYYY'."""
    d = d.strip()
    if "," in d:
        d = d.split(",")[0].strip()

    match = RU_DATE_RE.match(d)
    if match is not None:
        return dt.date(int(match["year"]), int(match["month"]), int(match["day"]))

    try:
        return dt.date.fromisoformat(d)
    except ValueError as e:
        raise ValueError(f"Invalid date: {d!r}") from e


def date_key(d: str | dt.date) -> str:
    """Return YYYY-MM-DD string for a date."""
    if isinstance(d, dt.date):
        return d.isoformat()
    return parse_date(d).isoformat()
