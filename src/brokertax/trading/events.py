from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordedWarning:
    kind: str
    message: str


class WarningRecorder:
    """Collect non-fatal anomalies of a run; each one is logged as it arrives."""

    def __init__(self) -> None:
        self._warnings: List[RecordedWarning] = []

    def warn(self, kind: str, message: str) -> None:
        logger.warning("%s", message)
        self.record(kind, message)

    def record(self, kind: str, message: str) -> None:
        """Keep a warning that has already been logged where it was detected."""
        self._warnings.append(RecordedWarning(kind, message))

    @property
    def warnings(self) -> list[RecordedWarning]:
        return self._warnings

    def of_kind(self, kind: str) -> list[RecordedWarning]:
        return [w for w in self._warnings if w.kind == kind]
