"""
Pytest configuration and shared fakes for all tests.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.message import EmailMessage
from email.utils import format_datetime
from typing import Callable, Iterator, Optional, Sequence

import pytest

# Keep tests independent of a developer's .env
os.environ.setdefault("EMAIL_STORE_BACKEND", "none")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from mailmigration.application.ports.mail_source import ImapCredentials, RawMessage  # noqa: E402
from mailmigration.domain.entities.date_window import DateWindow  # noqa: E402
from mailmigration.domain.errors import EnumerationError, FolderError, PersistenceError  # noqa: E402


def make_eml(
    subject: Optional[str] = "Hello",
    sender: Optional[str] = "Alice <alice@example.com>",
    to: Optional[str] = "bob@example.com",
    text: Optional[str] = "plain body",
    html: Optional[str] = None,
    date: Optional[datetime] = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc),
) -> bytes:
    """Build RFC 822 bytes with the given parts."""
    msg = EmailMessage()
    if subject is not None:
        msg["Subject"] = subject
    if sender is not None:
        msg["From"] = sender
    if to is not None:
        msg["To"] = to
    if date is not None:
        msg["Date"] = format_datetime(date)
    if text is not None:
        msg.set_content(text)
        if html is not None:
            msg.add_alternative(html, subtype="html")
    elif html is not None:
        msg.set_content(html, subtype="html")
    return msg.as_bytes()


@dataclass
class FakeMessage:
    uid: int
    data: bytes
    date: datetime = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@dataclass
class FakeSession:
    """In-memory MailSession recording every call."""

    mailboxes: dict[str, list[FakeMessage]] = field(default_factory=dict)
    failing_folders: set[str] = field(default_factory=set)
    open_errors: dict[str, Exception] = field(default_factory=dict)
    failing_searches: set[str] = field(default_factory=set)
    # folder -> number of chunks served before UID FETCH fails
    fetch_limits: dict[str, int] = field(default_factory=dict)
    fail_list: bool = False
    close_raises: bool = False

    opened: list[str] = field(default_factory=list)
    closed_folders: int = 0
    searches: list[tuple[str, DateWindow]] = field(default_factory=list)
    fetches: list[list[int]] = field(default_factory=list)
    close_calls: int = 0
    listed: int = 0
    fetched_chunks: dict[str, int] = field(default_factory=dict)
    _current: Optional[str] = None

    def list_folders(self) -> list[str]:
        self.listed += 1
        if self.fail_list:
            raise EnumerationError("LIST returned NO")
        return list(self.mailboxes)

    def open_folder(self, folder: str) -> None:
        self.opened.append(folder)
        if folder in self.open_errors:
            raise self.open_errors[folder]
        if folder in self.failing_folders or folder not in self.mailboxes:
            raise FolderError(folder, "SELECT returned NO")
        self._current = folder

    def search(self, window: DateWindow) -> list[int]:
        self.searches.append((self._current, window))
        if self._current in self.failing_searches:
            raise FolderError(self._current, "UID SEARCH returned NO")
        return [m.uid for m in self.mailboxes[self._current] if window.contains(m.date)]

    def fetch(self, uids: Sequence[int]) -> Iterator[RawMessage]:
        served = self.fetched_chunks.get(self._current, 0)
        if served >= self.fetch_limits.get(self._current, served + 1):
            raise FolderError(self._current, "UID FETCH failed: connection reset")
        self.fetched_chunks[self._current] = served + 1
        self.fetches.append(list(uids))
        by_uid = {m.uid: m for m in self.mailboxes[self._current]}
        for uid in uids:
            yield RawMessage(folder=self._current, uid=uid, rfc822_bytes=by_uid[uid].data)

    def close_folder(self) -> None:
        self.closed_folders += 1
        self._current = None

    def close(self) -> None:
        self.close_calls += 1
        if self.close_raises:
            raise OSError("socket already closed")


class FakeConnector:
    def __init__(self, session: Optional[FakeSession] = None, error: Optional[Exception] = None):
        self.session = session or FakeSession()
        self.error = error
        self.calls: list[tuple] = []

    def connect(self, host, port, secure, credentials: ImapCredentials, allow_insecure_tls=False):
        self.calls.append((host, port, secure, credentials, allow_insecure_tls))
        if self.error is not None:
            raise self.error
        return self.session


class FakeStore:
    """EmailStore that can be told to reject bulk writes or specific rows."""

    def __init__(self, fail_bulk: bool = False, reject: Optional[Callable[[dict], bool]] = None):
        self.fail_bulk = fail_bulk
        self.reject = reject or (lambda row: False)
        self.rows: list[dict] = []
        self.bulk_calls: list[int] = []
        self.single_calls = 0

    def insert_many(self, rows):
        self.bulk_calls.append(len(rows))
        if self.fail_bulk or any(self.reject(r) for r in rows):
            raise PersistenceError("bulk insert rejected")
        self.rows.extend(rows)

    def insert_one(self, row):
        self.single_calls += 1
        if self.reject(row):
            raise PersistenceError("row rejected")
        self.rows.append(row)


def mailbox(count: int, start_uid: int = 1, **eml_kwargs) -> list[FakeMessage]:
    return [
        FakeMessage(uid=start_uid + i, data=make_eml(subject=f"Message {start_uid + i}", **eml_kwargs))
        for i in range(count)
    ]


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()
