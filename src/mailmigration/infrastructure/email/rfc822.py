from __future__ import annotations
from datetime import datetime
from email import policy
from email.message import EmailMessage, Message
from email.parser import BytesParser
from email.utils import getaddresses, parsedate_to_datetime
from typing import Optional

from mailmigration.domain.entities.email_record import NO_SUBJECT, NormalizedEmailRecord
from mailmigration.domain.errors import ParseError

_parser = BytesParser(policy=policy.default)


def _part_text(part: Message) -> str:
    try:
        content = part.get_content()
    except (LookupError, UnicodeError, KeyError, AssertionError):
        # Unknown charset or broken transfer encoding: decode leniently
        payload = part.get_payload(decode=True) or b""
        charset = part.get_content_charset() or "utf-8"
        try:
            return payload.decode(charset, errors="replace")
        except LookupError:
            return payload.decode("utf-8", errors="replace")
    return content if isinstance(content, str) else ""


def _body(em: EmailMessage) -> str:
    # Prefer the rendered (HTML) body, then plain text
    for preference in ("html", "plain"):
        part = em.get_body(preferencelist=(preference,))
        if part is not None:
            text = _part_text(part)
            if text:
                return text
    return ""


def _addresses(em: EmailMessage, header: str) -> list[str]:
    values = em.get_all(header) or []
    pairs = getaddresses([str(v) for v in values])
    return [addr for _, addr in pairs if addr]


def _date(em: EmailMessage) -> Optional[datetime]:
    raw = em.get("Date")
    if raw is None:
        return None
    dt = getattr(raw, "datetime", None)
    if dt is not None:
        return dt
    try:
        return parsedate_to_datetime(str(raw))
    except (TypeError, ValueError, IndexError):
        return None


def rfc822_to_email_record(rfc822_bytes: bytes) -> NormalizedEmailRecord:
    """Parse raw message bytes into the record the store persists.

    Missing pieces fall back to defaults. ``ParseError`` means the bytes
    could not be interpreted at all.
    """
    if not isinstance(rfc822_bytes, (bytes, bytearray)):
        raise ParseError(f"expected bytes, got {type(rfc822_bytes).__name__}")

    try:
        em = _parser.parsebytes(bytes(rfc822_bytes))
        subject = str(em.get("Subject") or "").strip() or NO_SUBJECT
        senders = _addresses(em, "From")
        recipients = _addresses(em, "To")
        body = _body(em)
        created_at = _date(em)
    except Exception as e:
        raise ParseError(f"unparseable message: {e}") from e

    return NormalizedEmailRecord(
        subject=subject,
        from_email=senders[0] if senders else "",
        to_email=", ".join(recipients),
        body=body,
        created_at=created_at,
    )
