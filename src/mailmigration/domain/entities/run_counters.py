from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True)
class CommitOutcome:
    imported: int = 0
    failed: int = 0


@dataclass
class RunCounters:
    """Progress for a single run. Values only ever grow."""

    processed: int = 0
    imported: int = 0
    failed: int = 0

    def mark_processed(self) -> None:
        self.processed += 1

    def mark_failed(self) -> None:
        self.failed += 1

    def add(self, outcome: CommitOutcome) -> None:
        self.imported += outcome.imported
        self.failed += outcome.failed

    def reached(self, limit: int | None) -> bool:
        return limit is not None and self.processed >= limit
