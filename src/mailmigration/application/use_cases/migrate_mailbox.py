"""Drive a mailbox migration run from connect to close."""

from __future__ import annotations

from enum import Enum
from typing import Callable, Optional

from loguru import logger

from mailmigration.application.cancellation import CancellationToken
from mailmigration.application.committer import EmailCommitter
from mailmigration.application.fetching import DEFAULT_CHUNK_SIZE, ChunkedFetcher
from mailmigration.application.ports.mail_source import ImapCredentials, MailConnector, MailSession
from mailmigration.domain.entities.date_window import DateWindow
from mailmigration.domain.entities.email_record import NormalizedEmailRecord
from mailmigration.domain.entities.run_counters import RunCounters
from mailmigration.domain.errors import ConnectError, FolderError, ParseError, UnknownConnectError
from mailmigration.domain.models import (
    ConnectionTestResult,
    MigrationAction,
    MigrationRequest,
    MigrationResult,
)
from mailmigration.infrastructure.email.rfc822 import rfc822_to_email_record

Normalizer = Callable[[bytes], NormalizedEmailRecord]


class RunState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    TESTING = "testing"
    MIGRATING = "migrating"
    CLOSED = "closed"


class MigrateMailboxUseCase:
    """Run coordinator for one migration or connection test.

    Flow (migrate):
    1. Connect and authenticate (fatal on failure)
    2. For each folder, sequentially: open, select by date window
    3. Fetch the selection in fixed-size chunks
    4. Normalize each message, then commit the chunk
    5. Close the folder; stop early once the message cap or a cancel is hit
    6. Close the session on every exit path

    Use one instance per run: ``state`` reflects the latest run.
    """

    def __init__(
        self,
        connector: MailConnector,
        committer: EmailCommitter,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        normalize: Normalizer = rfc822_to_email_record,
    ) -> None:
        self.connector = connector
        self.committer = committer
        self.fetcher = ChunkedFetcher(chunk_size)
        self.normalize = normalize
        self.state = RunState.IDLE

    def run(
        self,
        request: MigrationRequest,
        cancel: Optional[CancellationToken] = None,
    ) -> ConnectionTestResult | MigrationResult:
        self._transition(RunState.CONNECTING)
        try:
            session = self.connector.connect(
                request.host,
                request.port,
                request.secure,
                ImapCredentials(request.username, request.password.get_secret_value()),
                request.allow_insecure_tls,
            )
        except ConnectError:
            self._transition(RunState.CLOSED)
            raise
        except Exception as e:
            self._transition(RunState.CLOSED)
            raise UnknownConnectError(str(e)) from e

        self._transition(RunState.CONNECTED)
        try:
            if request.action is MigrationAction.TEST:
                self._transition(RunState.TESTING)
                return self._test(session)
            self._transition(RunState.MIGRATING)
            return self._migrate(session, request, cancel)
        finally:
            _close_quietly(session)
            self._transition(RunState.CLOSED)

    def _test(self, session: MailSession) -> ConnectionTestResult:
        mailboxes = session.list_folders()
        return ConnectionTestResult(success=True, mailboxes=mailboxes)

    def _migrate(
        self,
        session: MailSession,
        request: MigrationRequest,
        cancel: Optional[CancellationToken],
    ) -> MigrationResult:
        counters = RunCounters()
        window = DateWindow.from_bounds(request.date_from, request.date_to)
        cap = request.max_messages

        for folder in request.folders:
            if self._should_stop(counters, cap, cancel):
                break
            try:
                self._migrate_folder(session, folder, window, counters, cap, cancel)
            except FolderError as e:
                logger.warning(f"Skipping folder {folder}: {e}")
            except Exception as e:
                logger.error(f"Unexpected error in folder {folder}, skipping: {e!r}")
            finally:
                session.close_folder()

        if not self.committer.enabled:
            logger.warning("No email store configured: messages were processed but not imported")
        logger.info(
            f"Migration finished: processed={counters.processed} "
            f"imported={counters.imported} failed={counters.failed}"
        )
        return MigrationResult(
            processed=counters.processed,
            imported=counters.imported,
            failed=counters.failed,
        )

    def _migrate_folder(
        self,
        session: MailSession,
        folder: str,
        window: DateWindow,
        counters: RunCounters,
        cap: Optional[int],
        cancel: Optional[CancellationToken],
    ) -> None:
        session.open_folder(folder)
        uids = session.search(window)
        if not uids:
            logger.info(f"No messages to migrate in {folder}")
            return

        for chunk in self.fetcher.chunks(uids):
            if self._should_stop(counters, cap, cancel):
                return

            records: list[NormalizedEmailRecord] = []
            for raw in self.fetcher.fetch(session, chunk):
                counters.mark_processed()
                try:
                    records.append(self.normalize(raw.rfc822_bytes))
                except ParseError as e:
                    counters.mark_failed()
                    logger.warning(f"Failed to parse UID {raw.uid} in {folder}: {e}")
                if self._should_stop(counters, cap, cancel):
                    break

            counters.add(self.committer.commit(records))
            logger.debug(f"Committed chunk of {len(records)} records from {folder}")

    def _should_stop(
        self,
        counters: RunCounters,
        cap: Optional[int],
        cancel: Optional[CancellationToken],
    ) -> bool:
        if counters.reached(cap):
            logger.info(f"Message cap of {cap} reached, stopping")
            return True
        if cancel is not None and cancel.cancelled:
            logger.info("Migration cancelled, stopping")
            return True
        return False

    def _transition(self, state: RunState) -> None:
        logger.debug(f"Run state {self.state.value} -> {state.value}")
        self.state = state


def _close_quietly(session: MailSession) -> None:
    try:
        session.close()
    except Exception as e:
        logger.debug(f"Ignoring error while closing session: {e}")
