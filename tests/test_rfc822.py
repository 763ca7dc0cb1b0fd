"""
Tests for RFC 822 message normalization.
"""

from datetime import datetime, timezone

import pytest

from conftest import make_eml
from mailmigration.domain.entities.email_record import NO_SUBJECT
from mailmigration.domain.errors import ParseError
from mailmigration.infrastructure.email.rfc822 import rfc822_to_email_record


class TestBodySelection:
    """Rendered body is preferred over plain text."""

    def test_html_preferred_over_plain(self):
        """multipart/alternative yields the HTML part."""
        raw = make_eml(text="plain version", html="<p>rendered <b>version</b></p>")

        record = rfc822_to_email_record(raw)

        assert "<b>version</b>" in record.body
        assert "plain version" not in record.body

    def test_plain_text_when_no_html_part(self):
        """A text-only message normalizes to its plain text."""
        raw = make_eml(text="just the plain text")

        record = rfc822_to_email_record(raw)

        assert record.body.strip() == "just the plain text"

    def test_html_only_message(self):
        raw = make_eml(text=None, html="<html><body>only html</body></html>")

        record = rfc822_to_email_record(raw)

        assert "only html" in record.body

    def test_empty_body_when_no_text_parts(self):
        """An attachment-only message has an empty body."""
        raw = (
            b"From: a@example.com\r\n"
            b"To: b@example.com\r\n"
            b"Subject: files\r\n"
            b"MIME-Version: 1.0\r\n"
            b'Content-Type: multipart/mixed; boundary="xyz"\r\n'
            b"\r\n"
            b"--xyz\r\n"
            b"Content-Type: application/pdf\r\n"
            b'Content-Disposition: attachment; filename="a.pdf"\r\n'
            b"Content-Transfer-Encoding: base64\r\n"
            b"\r\n"
            b"JVBERi0xLjQK\r\n"
            b"--xyz--\r\n"
        )

        record = rfc822_to_email_record(raw)

        assert record.body == ""

    def test_unknown_charset_is_decoded_leniently(self):
        raw = (
            b"From: a@example.com\r\n"
            b"Subject: odd charset\r\n"
            b"Content-Type: text/plain; charset=x-no-such-charset\r\n"
            b"\r\n"
            b"caf\xe9 body\r\n"
        )

        record = rfc822_to_email_record(raw)

        assert "body" in record.body


class TestHeaders:
    """Subject, addresses and timestamp extraction."""

    def test_full_headers(self):
        raw = make_eml(
            subject="Quarterly report",
            sender="Alice Smith <alice@example.com>",
            to="Bob <bob@example.com>, carol@example.com",
            date=datetime(2024, 5, 17, 9, 30, tzinfo=timezone.utc),
        )

        record = rfc822_to_email_record(raw)

        assert record.subject == "Quarterly report"
        assert record.from_email == "alice@example.com"
        assert record.to_email == "bob@example.com, carol@example.com"
        assert record.created_at == datetime(2024, 5, 17, 9, 30, tzinfo=timezone.utc)

    def test_missing_subject_uses_placeholder(self):
        record = rfc822_to_email_record(make_eml(subject=None))

        assert record.subject == NO_SUBJECT

    def test_missing_addresses_default_to_empty(self):
        record = rfc822_to_email_record(make_eml(sender=None, to=None))

        assert record.from_email == ""
        assert record.to_email == ""

    def test_missing_date_is_absent(self):
        record = rfc822_to_email_record(make_eml(date=None))

        assert record.created_at is None

    def test_garbage_date_is_absent(self):
        raw = b"Subject: x\r\nDate: not a real date\r\n\r\nbody\r\n"

        record = rfc822_to_email_record(raw)

        assert record.created_at is None

    def test_to_row_shape(self):
        row = rfc822_to_email_record(make_eml()).to_row()

        assert set(row) == {"subject", "from_email", "to_email", "body", "created_at"}


class TestUnparseable:
    """Only payloads that cannot be interpreted at all raise ParseError."""

    def test_non_bytes_payload(self):
        with pytest.raises(ParseError):
            rfc822_to_email_record(None)

    def test_headerless_bytes_still_parse(self):
        record = rfc822_to_email_record(b"no headers here at all")

        assert record.subject == NO_SUBJECT
