"""Generic IMAP mail source (implicit TLS or STARTTLS)."""

from mailmigration.infrastructure.email.providers.imap.client import (
    ImapConnector,
    ImapMailSession,
)

__all__ = ["ImapConnector", "ImapMailSession"]
