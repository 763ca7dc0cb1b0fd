"""Bulk-then-fallback persistence of normalized records."""

from __future__ import annotations

from typing import Optional, Sequence

from loguru import logger

from mailmigration.application.ports.email_store import EmailStore
from mailmigration.domain.entities.email_record import NormalizedEmailRecord
from mailmigration.domain.entities.run_counters import CommitOutcome
from mailmigration.domain.errors import PersistenceError


class EmailCommitter:
    """Write a batch in one insert; on failure salvage it row by row.

    Without a store nothing is imported and nothing fails: the records are
    simply undeliverable.
    """

    def __init__(self, store: Optional[EmailStore]) -> None:
        self.store = store

    @property
    def enabled(self) -> bool:
        return self.store is not None

    def commit(self, records: Sequence[NormalizedEmailRecord]) -> CommitOutcome:
        if not records:
            return CommitOutcome()
        if self.store is None:
            logger.debug(f"No email store configured, dropping {len(records)} records")
            return CommitOutcome()

        rows = [r.to_row() for r in records]
        try:
            self.store.insert_many(rows)
            return CommitOutcome(imported=len(rows))
        except PersistenceError as e:
            logger.warning(f"Bulk insert of {len(rows)} records failed, retrying individually: {e}")

        imported = failed = 0
        for row in rows:
            try:
                self.store.insert_one(row)
                imported += 1
            except PersistenceError as e:
                failed += 1
                logger.warning(f"Insert failed for '{str(row['subject'])[:50]}': {e}")

        logger.info(f"Salvaged {imported}/{len(rows)} records after bulk failure")
        return CommitOutcome(imported=imported, failed=failed)
