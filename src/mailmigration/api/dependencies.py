"""FastAPI dependencies wiring use cases to infrastructure."""

from fastapi import Depends

from mailmigration.application.committer import EmailCommitter
from mailmigration.application.use_cases import ImportArchiveUseCase, MigrateMailboxUseCase
from mailmigration.infrastructure.email.providers.imap import ImapConnector
from mailmigration.infrastructure.settings import Settings, get_settings
from mailmigration.infrastructure.stores import get_email_store


def get_committer() -> EmailCommitter:
    return EmailCommitter(get_email_store())


def get_migration_use_case(
    settings: Settings = Depends(get_settings),
    committer: EmailCommitter = Depends(get_committer),
) -> MigrateMailboxUseCase:
    """A fresh coordinator per request; runs never share state."""
    return MigrateMailboxUseCase(
        connector=ImapConnector(timeout=settings.imap_timeout_seconds),
        committer=committer,
        chunk_size=settings.migration_chunk_size,
    )


def get_archive_use_case(
    settings: Settings = Depends(get_settings),
    committer: EmailCommitter = Depends(get_committer),
) -> ImportArchiveUseCase:
    return ImportArchiveUseCase(committer=committer, chunk_size=settings.migration_chunk_size)
