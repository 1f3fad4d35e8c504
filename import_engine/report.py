"""
import_engine.report - Structured result of an import run.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional


class Outcome(str, enum.Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    FAILED = "failed"


@dataclass(frozen=True)
class ImportRowResult:
    identifier: str
    display_name: str
    outcome: Outcome
    error: Optional[str] = None

    def to_dict(self) -> dict:
        d = {
            "identifier": self.identifier,
            "name": self.display_name,
            "outcome": self.outcome.value,
        }
        if self.error:
            d["error"] = self.error
        return d


@dataclass
class ImportReport:
    total_rows: int = 0
    cancelled: bool = False
    results: list[ImportRowResult] = field(default_factory=list)

    def add(self, result: ImportRowResult):
        self.results.append(result)

    def _count(self, outcome: Outcome) -> int:
        return sum(1 for r in self.results if r.outcome is outcome)

    @property
    def inserted(self) -> int:
        return self._count(Outcome.INSERTED)

    @property
    def updated(self) -> int:
        return self._count(Outcome.UPDATED)

    @property
    def failed(self) -> int:
        return self._count(Outcome.FAILED)

    @property
    def processed(self) -> int:
        return len(self.results)

    def to_dict(self) -> dict:
        return {
            "total_rows": self.total_rows,
            "processed": self.processed,
            "inserted": self.inserted,
            "updated": self.updated,
            "failed": self.failed,
            "cancelled": self.cancelled,
            "results": [r.to_dict() for r in self.results],
        }
