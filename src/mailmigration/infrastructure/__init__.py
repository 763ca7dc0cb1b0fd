# src/mailmigration/infrastructure/__init__.py
"""Infrastructure layer - IMAP provider, stores, and configuration."""

from mailmigration.infrastructure.log_config import configure_logging
from mailmigration.infrastructure.postgres_client import (
    PostgresClientWrapper,
    get_postgres_client,
)
from mailmigration.infrastructure.settings import Settings, get_settings

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "configure_logging",
    # Postgres
    "PostgresClientWrapper",
    "get_postgres_client",
]
