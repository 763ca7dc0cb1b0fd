from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

NO_SUBJECT = "(no subject)"


@dataclass(frozen=True)
class NormalizedEmailRecord:
    subject: str
    from_email: str
    to_email: str  # comma-joined recipient addresses
    body: str
    created_at: Optional[datetime] = None  # store defaults it when absent

    def to_row(self) -> dict[str, Any]:
        """Row shape written to the emails table."""
        return {
            "subject": self.subject,
            "from_email": self.from_email,
            "to_email": self.to_email,
            "body": self.body,
            "created_at": self.created_at,
        }
