from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional


@dataclass(frozen=True)
class DateWindow:
    """Half-open day window used to select messages.

    ``since`` is inclusive. ``before`` is exclusive and already advanced one
    day past the caller's ``date_to`` so the whole last day is included.
    """

    since: Optional[date] = None
    before: Optional[date] = None

    @classmethod
    def from_bounds(cls, date_from: Optional[date], date_to: Optional[date]) -> "DateWindow":
        before = date_to + timedelta(days=1) if date_to else None
        return cls(since=date_from, before=before)

    @property
    def is_unbounded(self) -> bool:
        return self.since is None and self.before is None

    def contains(self, ts: datetime) -> bool:
        day = ts.date()
        if self.since and day < self.since:
            return False
        if self.before and day >= self.before:
            return False
        return True
