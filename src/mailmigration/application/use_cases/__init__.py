"""Use cases: mailbox migration and archive import."""

from mailmigration.application.use_cases.import_archive import ImportArchiveUseCase
from mailmigration.application.use_cases.migrate_mailbox import MigrateMailboxUseCase, RunState

__all__ = ["ImportArchiveUseCase", "MigrateMailboxUseCase", "RunState"]
