"""Bounded-batch retrieval of raw messages."""

from __future__ import annotations

from typing import Iterator, Sequence

from mailmigration.application.ports.mail_source import MailSession, MessageId, RawMessage

DEFAULT_CHUNK_SIZE = 50


class ChunkedFetcher:
    """Split identifiers into fixed-size chunks and fetch one chunk at a time.

    A chunk must be fully drained by the caller before the next one is
    requested, so memory stays proportional to ``chunk_size`` rather than to
    the mailbox.
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.chunk_size = chunk_size

    def chunks(self, uids: Sequence[MessageId]) -> Iterator[Sequence[MessageId]]:
        for i in range(0, len(uids), self.chunk_size):
            yield uids[i : i + self.chunk_size]

    def fetch(self, session: MailSession, chunk: Sequence[MessageId]) -> Iterator[RawMessage]:
        return session.fetch(chunk)
