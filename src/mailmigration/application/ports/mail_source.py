from __future__ import annotations
from dataclasses import dataclass
from typing import Iterator, Protocol, Sequence

from mailmigration.domain.entities.date_window import DateWindow

# IMAP UID: only meaningful inside the folder it was selected from
MessageId = int


@dataclass(frozen=True)
class RawMessage:
    folder: str
    uid: MessageId
    rfc822_bytes: bytes


@dataclass(frozen=True)
class ImapCredentials:
    username: str
    password: str


class MailSession(Protocol):
    """One authenticated connection. Supports a single open folder at a time."""

    def list_folders(self) -> list[str]: ...
    def open_folder(self, folder: str) -> None: ...
    def search(self, window: DateWindow) -> list[MessageId]: ...
    def fetch(self, uids: Sequence[MessageId]) -> Iterator[RawMessage]: ...
    def close_folder(self) -> None: ...
    def close(self) -> None: ...


class MailConnector(Protocol):
    def connect(
        self,
        host: str,
        port: int,
        secure: bool,
        credentials: ImapCredentials,
        allow_insecure_tls: bool = False,
    ) -> MailSession: ...
