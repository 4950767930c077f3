from __future__ import annotations

import enum
from collections.abc import Sequence

from .rates import Jurisdiction


class TaxExemption(enum.Enum):
    LONG_TERM_OWNERSHIP = "long-term-ownership"
    TAX_FREE = "tax-free"

    @classmethod
    def parse(cls, value: str) -> TaxExemption:
        try:
            return cls(value.strip())
        except ValueError:
            choices = ", ".join(e.value for e in cls)
            raise ValueError(f"Invalid tax exemption {value!r}; expected one of: {choices}") from None


def validate_tax_exemptions(
    jurisdiction: Jurisdiction, exemptions: Sequence[TaxExemption]
) -> None:
    if not exemptions:
        return

    if len(exemptions) > 1:
        raise ValueError("Only one tax exemption can be specified per portfolio")

    if jurisdiction is not Jurisdiction.RUSSIA:
        raise ValueError(
            "Tax exemptions are only supported for brokers with Russia jurisdiction"
        )
