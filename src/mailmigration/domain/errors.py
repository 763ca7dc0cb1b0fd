"""Error taxonomy for the migration pipeline.

Only ``ConnectError``, ``EnumerationError`` and ``ArchiveError`` are allowed to
escape a use case. Everything else is absorbed into run counters.
"""

from __future__ import annotations


class MigrationError(Exception):
    """Base class for every error raised by the pipeline."""


# ============================================================================
# Connect errors (fatal, abort the run before any counters accrue)
# ============================================================================


class ConnectError(MigrationError):
    """Connecting or authenticating to the mailbox server failed."""

    code = "unknown"
    user_message = "IMAP connection failed."

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail or self.user_message)
        self.detail = detail


class AuthenticationFailed(ConnectError):
    code = "authentication_failed"
    user_message = "Authentication failed. Verify email and app password."


class HostUnreachable(ConnectError):
    code = "host_unreachable"
    user_message = "IMAP host not found. Check hostname."


class ConnectionRefused(ConnectError):
    code = "connection_refused"
    user_message = "Connection refused. Check port and firewall."


class ConnectTimeout(ConnectError):
    code = "timeout"
    user_message = "Connection timed out. Network or port blocked."


class InsecureCertificate(ConnectError):
    code = "insecure_certificate"
    user_message = 'TLS certificate error. Enable "Allow insecure TLS" for testing.'


class UnknownConnectError(ConnectError):
    pass


# ============================================================================
# Run-level errors
# ============================================================================


class EnumerationError(MigrationError):
    """Listing mailboxes failed (fatal in test mode only)."""

    user_message = "Failed to list mailboxes"


class FolderError(MigrationError):
    """Selecting, searching or fetching inside one folder failed."""

    def __init__(self, folder: str, detail: str) -> None:
        super().__init__(f"{folder}: {detail}")
        self.folder = folder


class ParseError(MigrationError):
    """A raw message could not be turned into a record at all."""


class PersistenceError(MigrationError):
    """A write to the email store failed."""


class ArchiveError(MigrationError):
    """An uploaded archive could not be opened."""

    def __init__(self, message: str, encrypted: bool = False) -> None:
        super().__init__(message)
        self.encrypted = encrypted
