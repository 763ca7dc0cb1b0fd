"""Email store implementations."""

from functools import lru_cache

from loguru import logger

from mailmigration.application.ports.email_store import EmailStore
from mailmigration.infrastructure.postgres_client import get_postgres_client
from mailmigration.infrastructure.settings import get_settings
from mailmigration.infrastructure.stores.postgres_email_store import PostgresEmailStore
from mailmigration.infrastructure.stores.sqlite_email_store import SQLiteEmailStore


@lru_cache
def get_email_store() -> EmailStore | None:
    """Configured email store, or None when no store is configured."""
    settings = get_settings()
    backend = settings.email_store_backend

    if backend == "postgres":
        return PostgresEmailStore(get_postgres_client(), table=settings.emails_table)
    if backend == "sqlite":
        return SQLiteEmailStore(settings.sqlite_path, table=settings.emails_table)

    logger.warning("EMAIL_STORE_BACKEND is 'none': migrated messages will not be imported")
    return None


__all__ = [
    "PostgresEmailStore",
    "SQLiteEmailStore",
    "get_email_store",
]
