from __future__ import annotations
from typing import Any, Mapping, Protocol, Sequence

Row = Mapping[str, Any]


class EmailStore(Protocol):
    """Durable sink for normalized email rows.

    Both methods raise ``PersistenceError`` on failure. ``insert_many`` is all
    or nothing.
    """

    def insert_many(self, rows: Sequence[Row]) -> None: ...
    def insert_one(self, row: Row) -> None: ...
