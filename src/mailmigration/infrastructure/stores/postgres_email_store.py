"""PostgreSQL implementation of EmailStore."""

from __future__ import annotations

from typing import Sequence

import psycopg
from loguru import logger
from psycopg import sql

from mailmigration.application.ports.email_store import EmailStore, Row
from mailmigration.domain.errors import PersistenceError
from mailmigration.infrastructure.postgres_client import PostgresClientWrapper


class PostgresEmailStore(EmailStore):
    """Insert migrated emails into a Postgres table."""

    def __init__(self, client: PostgresClientWrapper, table: str = "emails"):
        self.client = client
        self.table = table
        self._insert = sql.SQL(
            "INSERT INTO {table} (subject, from_email, to_email, body, created_at) "
            "VALUES (%(subject)s, %(from_email)s, %(to_email)s, %(body)s, "
            "COALESCE(%(created_at)s::timestamptz, CURRENT_TIMESTAMP))"
        ).format(table=sql.Identifier(table))

    def insert_many(self, rows: Sequence[Row]) -> None:
        """Insert all rows in one transaction."""
        if not rows:
            return
        try:
            # Each write checks out its own connection and transaction
            with self.client.connection() as conn, conn.transaction(), conn.cursor() as cur:
                cur.executemany(self._insert, rows)
        except psycopg.Error as e:
            raise PersistenceError(f"bulk insert into {self.table} failed: {e}") from e
        logger.debug(f"Inserted {len(rows)} rows into {self.table}")

    def insert_one(self, row: Row) -> None:
        try:
            with self.client.connection() as conn, conn.transaction(), conn.cursor() as cur:
                cur.execute(self._insert, row)
        except psycopg.Error as e:
            raise PersistenceError(f"insert into {self.table} failed: {e}") from e
