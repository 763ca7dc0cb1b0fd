"""Domain models for mailbox migration runs."""

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

DEFAULT_FOLDER = "INBOX"
DEFAULT_IMAP_PORT = 993


class MigrationAction(str, Enum):
    """What a run should do once connected."""

    TEST = "test"
    MIGRATE = "migrate"


class MigrationRequest(BaseModel):
    """Caller-supplied parameters for one run. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    host: str
    port: int = DEFAULT_IMAP_PORT
    secure: bool = True
    username: str
    password: SecretStr
    folders: tuple[str, ...] = (DEFAULT_FOLDER,)
    date_from: date | None = None
    date_to: date | None = None
    max_messages: int | None = None
    allow_insecure_tls: bool = False
    action: MigrationAction = MigrationAction.MIGRATE

    @field_validator("folders", mode="before")
    @classmethod
    def _default_folders(cls, value):
        if not value:
            return (DEFAULT_FOLDER,)
        return tuple(value)

    @field_validator("max_messages")
    @classmethod
    def _positive_cap(cls, value: int | None) -> int | None:
        # Zero or negative means "no cap"
        if value is not None and value <= 0:
            return None
        return value


class ConnectionTestResult(BaseModel):
    """Outcome of a test run: the full folder list."""

    success: bool = True
    mailboxes: list[str] = Field(default_factory=list)


class MigrationResult(BaseModel):
    """Outcome of a migrate run."""

    processed: int = 0
    imported: int = 0
    failed: int = 0


class ArchiveImportResult(BaseModel):
    """Outcome of importing an uploaded archive."""

    success: bool = True
    processed: int = 0
    imported: int = 0
    failed: int = 0
    errors: list[str] | None = None
