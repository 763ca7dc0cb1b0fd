"""Domain models and entities."""

from mailmigration.domain.models import (
    ArchiveImportResult,
    ConnectionTestResult,
    MigrationAction,
    MigrationRequest,
    MigrationResult,
)

__all__ = [
    "MigrationAction",
    "MigrationRequest",
    "MigrationResult",
    "ConnectionTestResult",
    "ArchiveImportResult",
]
