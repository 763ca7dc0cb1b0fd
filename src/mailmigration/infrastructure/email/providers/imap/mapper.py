"""Translate between IMAP wire responses and pipeline types."""

from __future__ import annotations
import re
from datetime import date
from typing import Iterator, Sequence

from imapclient import imap_utf7

from mailmigration.application.ports.mail_source import MessageId, RawMessage
from mailmigration.domain.entities.date_window import DateWindow

# RFC 3501 date-text months; locale independent unlike strftime("%b")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

# (\HasNoChildren) "/" "INBOX/Sub"  |  () "." Archive
_LIST_LINE = re.compile(rb'^\((?P<flags>[^)]*)\)\s+(?P<delim>"[^"]*"|NIL)\s+(?P<name>.+)$')
_UID_IN_HEADER = re.compile(rb"UID\s+(\d+)")


def imap_date(d: date) -> str:
    return f"{d.day:02d}-{_MONTHS[d.month - 1]}-{d.year}"


def search_criteria(window: DateWindow) -> list[str]:
    """UID SEARCH arguments for a date window. Unbounded means ALL."""
    criteria = ["ALL"]
    if window.since:
        criteria += ["SINCE", imap_date(window.since)]
    if window.before:
        criteria += ["BEFORE", imap_date(window.before)]
    return criteria


def parse_uid_list(data: Sequence[bytes | None]) -> list[MessageId]:
    if not data or not data[0]:
        return []
    return [int(x) for x in data[0].split()]


def parse_list_response(lines: Sequence[bytes | tuple | None]) -> list[str]:
    """Folder paths from a LIST response, in server order."""
    folders: list[str] = []
    for line in lines:
        if not line:
            continue
        if isinstance(line, tuple):
            # Literal-quoted name: (b'(\\HasNoChildren) "/" {7}', b'Archive')
            folders.append(_decode_name(line[1]))
            continue
        match = _LIST_LINE.match(line)
        if not match:
            continue
        folders.append(_decode_name(match.group("name")))
    return folders


def _decode_name(raw: bytes) -> str:
    name = raw.strip()
    if name.startswith(b'"') and name.endswith(b'"'):
        name = name[1:-1].replace(b'\\"', b'"').replace(b"\\\\", b"\\")
    if not name.isascii():
        # UTF8=ACCEPT servers send raw UTF-8
        return name.decode("utf-8", errors="replace")
    try:
        return imap_utf7.decode(name)
    except ValueError:
        return name.decode("ascii")


def encode_mailbox(name: str) -> str:
    """Modified UTF-7 form of a folder path, as SELECT expects it."""
    return imap_utf7.encode(name).decode("ascii")


def uid_set(uids: Sequence[MessageId]) -> str:
    return ",".join(str(u) for u in uids)


def iter_fetch_response(folder: str, data: Sequence[bytes | tuple | None]) -> Iterator[RawMessage]:
    """Yield one RawMessage per literal in a UID FETCH response, in server order.

    imaplib returns ``[(b'1 (UID 5 BODY[] {123}', b'<bytes>'), b')', ...]``.
    """
    for item in data:
        if not isinstance(item, tuple) or len(item) < 2:
            continue
        header, payload = item[0], item[1]
        match = _UID_IN_HEADER.search(header)
        if not match:
            continue
        yield RawMessage(folder=folder, uid=int(match.group(1)), rfc822_bytes=payload)
