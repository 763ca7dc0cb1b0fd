from __future__ import annotations
import imaplib
from typing import Iterator, Optional, Sequence

from loguru import logger

from mailmigration.application.ports.mail_source import (
    ImapCredentials,
    MailSession,
    MessageId,
    RawMessage,
)
from mailmigration.domain.entities.date_window import DateWindow
from mailmigration.domain.errors import EnumerationError, FolderError
from mailmigration.infrastructure.email.providers.imap.auth import (
    DEFAULT_TIMEOUT_SECONDS,
    ImapAuthenticator,
)
from mailmigration.infrastructure.email.providers.imap.mapper import (
    encode_mailbox,
    iter_fetch_response,
    parse_list_response,
    parse_uid_list,
    search_criteria,
    uid_set,
)

# PEEK so migration never sets \Seen on the source
FETCH_ITEMS = "(UID BODY.PEEK[])"


def quote_mailbox(name: str) -> str:
    return '"' + name.replace("\\", "\\\\").replace('"', '\\"') + '"'


class ImapMailSession(MailSession):
    """An authenticated imaplib connection with at most one open folder."""

    def __init__(self, conn: imaplib.IMAP4) -> None:
        self._conn: Optional[imaplib.IMAP4] = conn
        self._folder: Optional[str] = None

    @property
    def conn(self) -> imaplib.IMAP4:
        if self._conn is None:
            raise RuntimeError("IMAP session is closed")
        return self._conn

    @property
    def current_folder(self) -> Optional[str]:
        return self._folder

    def list_folders(self) -> list[str]:
        try:
            typ, data = self.conn.list()
        except (imaplib.IMAP4.error, OSError) as e:
            raise EnumerationError(str(e)) from e
        if typ != "OK":
            raise EnumerationError(f"LIST returned {typ}")
        folders = parse_list_response(data)
        logger.info(f"Listed {len(folders)} mailboxes")
        return folders

    def open_folder(self, folder: str) -> None:
        if self._folder is not None:
            raise FolderError(folder, f"folder {self._folder} is still open")
        self._folder = folder
        try:
            typ, data = self.conn.select(quote_mailbox(encode_mailbox(folder)), readonly=True)
        except (imaplib.IMAP4.error, OSError, ValueError) as e:
            raise FolderError(folder, f"SELECT failed: {e}") from e
        if typ != "OK":
            raise FolderError(folder, f"SELECT returned {typ}: {data!r}")
        logger.debug(f"Opened {folder} ({data[0]!r} messages)")

    def search(self, window: DateWindow) -> list[MessageId]:
        folder = self._require_folder()
        criteria = search_criteria(window)
        try:
            typ, data = self.conn.uid("SEARCH", None, *criteria)
        except (imaplib.IMAP4.error, OSError, ValueError) as e:
            raise FolderError(folder, f"UID SEARCH failed: {e}") from e
        if typ != "OK":
            raise FolderError(folder, f"UID SEARCH returned {typ}")
        uids = parse_uid_list(data)
        logger.info(f"Found {len(uids)} messages in {folder} matching {' '.join(criteria)}")
        return uids

    def fetch(self, uids: Sequence[MessageId]) -> Iterator[RawMessage]:
        folder = self._require_folder()
        if not uids:
            return iter(())
        try:
            typ, data = self.conn.uid("FETCH", uid_set(uids), FETCH_ITEMS)
        except (imaplib.IMAP4.error, OSError, ValueError) as e:
            raise FolderError(folder, f"UID FETCH failed: {e}") from e
        if typ != "OK":
            raise FolderError(folder, f"UID FETCH returned {typ}")
        return iter_fetch_response(folder, data)

    def close_folder(self) -> None:
        """Close the open folder, if any. Never raises."""
        folder, self._folder = self._folder, None
        if folder is None or self._conn is None:
            return
        try:
            self._conn.close()
        except Exception as e:
            logger.debug(f"Ignoring error closing folder {folder}: {e}")

    def close(self) -> None:
        """Log out. Idempotent and never raises."""
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        self._folder = None
        try:
            conn.logout()
        except Exception as e:
            logger.debug(f"Ignoring error during IMAP logout: {e}")

    def _require_folder(self) -> str:
        if self._folder is None:
            raise FolderError("<none>", "no folder is open")
        return self._folder


class ImapConnector:
    """Opens ImapMailSession instances."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.authenticator = ImapAuthenticator(timeout=timeout)

    def connect(
        self,
        host: str,
        port: int,
        secure: bool,
        credentials: ImapCredentials,
        allow_insecure_tls: bool = False,
    ) -> ImapMailSession:
        conn = self.authenticator.login(host, port, secure, credentials, allow_insecure_tls)
        return ImapMailSession(conn)
