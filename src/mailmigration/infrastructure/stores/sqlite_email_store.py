"""SQLite implementation of EmailStore for local and development use."""

from __future__ import annotations

import re
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Generator, Sequence

from loguru import logger

from mailmigration.application.ports.email_store import EmailStore, Row
from mailmigration.domain.errors import PersistenceError

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _to_params(row: Row) -> tuple[Any, ...]:
    created_at = row.get("created_at")
    if isinstance(created_at, datetime):
        created_at = created_at.isoformat()
    return (row.get("subject"), row.get("from_email"), row.get("to_email"), row.get("body"), created_at)


class SQLiteEmailStore(EmailStore):
    """SQLite-backed email table."""

    def __init__(self, db_path: str | Path = "./data/emails.db", table: str = "emails"):
        if not _IDENTIFIER.match(table):
            raise ValueError(f"Invalid table name: {table!r}")
        self.db_path = Path(db_path)
        self.table = table
        self._insert_sql = (
            f"INSERT INTO {table} (subject, from_email, to_email, body, created_at) "
            "VALUES (?, ?, ?, ?, COALESCE(?, strftime('%Y-%m-%dT%H:%M:%fZ', 'now')))"
        )
        self._ensure_db()

    def _ensure_db(self) -> None:
        """Create database and table if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._connection() as conn:
            conn.executescript(f"""
                PRAGMA journal_mode=WAL;

                CREATE TABLE IF NOT EXISTS {self.table} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    subject TEXT NOT NULL,
                    from_email TEXT NOT NULL,
                    to_email TEXT NOT NULL,
                    body TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_{self.table}_created_at
                    ON {self.table}(created_at);
            """)
            logger.info(f"SQLite email store initialized at {self.db_path}")

    @contextmanager
    def _connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager for database connections."""
        conn = sqlite3.connect(self.db_path, timeout=30.0)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def insert_many(self, rows: Sequence[Row]) -> None:
        if not rows:
            return
        try:
            with self._connection() as conn:
                conn.executemany(self._insert_sql, [_to_params(r) for r in rows])
        except sqlite3.Error as e:
            raise PersistenceError(f"bulk insert into {self.table} failed: {e}") from e
        logger.debug(f"Inserted {len(rows)} rows into {self.table}")

    def insert_one(self, row: Row) -> None:
        try:
            with self._connection() as conn:
                conn.execute(self._insert_sql, _to_params(row))
        except sqlite3.Error as e:
            raise PersistenceError(f"insert into {self.table} failed: {e}") from e

    def count(self) -> int:
        with self._connection() as conn:
            return conn.execute(f"SELECT COUNT(*) FROM {self.table}").fetchone()[0]

    def all_rows(self) -> list[dict[str, Any]]:
        """All stored rows, oldest insert first."""
        with self._connection() as conn:
            cursor = conn.execute(
                f"SELECT subject, from_email, to_email, body, created_at FROM {self.table} ORDER BY id"
            )
            return [dict(row) for row in cursor.fetchall()]
