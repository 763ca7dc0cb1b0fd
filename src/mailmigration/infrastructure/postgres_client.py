"""PostgreSQL client for the migrated email store."""

import threading
from contextlib import contextmanager
from typing import Any, Iterator

import psycopg
from loguru import logger
from psycopg import sql
from psycopg_pool import ConnectionPool

from mailmigration.infrastructure.settings import Settings, get_settings


class PostgresClientWrapper:
    """Wrapper for the PostgreSQL connection pool and schema.

    Callers check out a connection per unit of work, so concurrent requests
    never share a transaction.
    """

    def __init__(self, settings: Settings | None = None):
        """Initialize PostgreSQL client wrapper."""
        self.settings = settings or get_settings()
        self._pool: ConnectionPool | None = None
        self._lock = threading.Lock()

    def connect(self) -> ConnectionPool:
        """Open the connection pool."""
        with self._lock:
            if self._pool is None or self._pool.closed:
                logger.info(f"Connecting to PostgreSQL at {self.settings.postgres_host}:{self.settings.postgres_port}")
                # Autocommit so every transaction() block is a real transaction
                self._pool = ConnectionPool(
                    self.settings.postgres_dsn,
                    min_size=1,
                    max_size=self.settings.postgres_pool_size,
                    kwargs={"autocommit": True},
                    open=True,
                )
                logger.info("PostgreSQL connection pool ready")
            return self._pool

    def disconnect(self) -> None:
        """Close the connection pool."""
        if self._pool is not None and not self._pool.closed:
            self._pool.close()
            self._pool = None
            logger.info("PostgreSQL connection pool closed")

    @contextmanager
    def connection(self) -> Iterator[psycopg.Connection]:
        """Check out a pooled connection for the duration of the block."""
        with self.connect().connection() as conn:
            yield conn

    def health_check(self) -> dict[str, Any]:
        """Check PostgreSQL connection health."""
        try:
            with self.connection() as conn, conn.cursor() as cur:
                cur.execute("SELECT version()")
                version = cur.fetchone()[0]
            return {
                "status": "healthy",
                "host": self.settings.postgres_host,
                "port": self.settings.postgres_port,
                "database": self.settings.postgres_db,
                "version": version,
            }
        except Exception as e:
            logger.error(f"PostgreSQL health check failed: {e}")
            return {
                "status": "unhealthy",
                "host": self.settings.postgres_host,
                "port": self.settings.postgres_port,
                "database": self.settings.postgres_db,
                "error": str(e),
            }

    def setup_schema(self) -> None:
        """Create the emails table if it does not exist."""
        table = sql.Identifier(self.settings.emails_table)
        with self.connection() as conn, conn.cursor() as cur:
            cur.execute(
                sql.SQL("""
                    CREATE TABLE IF NOT EXISTS {table} (
                        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                        subject TEXT NOT NULL,
                        from_email TEXT NOT NULL,
                        to_email TEXT NOT NULL,
                        body TEXT NOT NULL,
                        created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT CURRENT_TIMESTAMP
                    )
                """).format(table=table)
            )
            cur.execute(
                sql.SQL("CREATE INDEX IF NOT EXISTS {index} ON {table} (created_at)").format(
                    index=sql.Identifier(f"idx_{self.settings.emails_table}_created_at"),
                    table=table,
                )
            )
        logger.info("Database schema setup complete")


# Singleton instance
_postgres_client: PostgresClientWrapper | None = None


def get_postgres_client() -> PostgresClientWrapper:
    """Get singleton PostgreSQL client instance."""
    global _postgres_client
    if _postgres_client is None:
        _postgres_client = PostgresClientWrapper()
    return _postgres_client
