"""
API routes for the mail migration service.
"""

from datetime import date, datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator

from mailmigration.api.dependencies import get_archive_use_case, get_migration_use_case
from mailmigration.application.use_cases import ImportArchiveUseCase, MigrateMailboxUseCase
from mailmigration.domain import MigrationAction, MigrationRequest
from mailmigration.domain.errors import ArchiveError, ConnectError, EnumerationError
from mailmigration.infrastructure import get_postgres_client, get_settings
from mailmigration.infrastructure.settings import Settings
from mailmigration.infrastructure.stores import get_email_store

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class MigrateRequestBody(BaseModel):
    """Request body for the migrate endpoint (camelCase, as sent by the admin UI)."""

    model_config = ConfigDict(populate_by_name=True)

    provider: str | None = Field(None, description="Provider label from the UI (informational)")
    hostname: str = ""
    port: int | None = None
    use_ssl: bool = Field(False, alias="useSSL")
    username: str = ""
    password: str = ""
    folders: list[str] | None = None
    date_from: date | None = Field(None, alias="dateFrom")
    date_to: date | None = Field(None, alias="dateTo")
    max_messages: int | None = Field(None, alias="maxMessages")
    allow_insecure_tls: bool = Field(False, alias="allowInsecureTLS")
    action: MigrationAction = MigrationAction.MIGRATE

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def _date_only(cls, value: Any) -> Any:
        # Accept "", "2024-01-31" and "2024-01-31T00:00:00Z"
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
            return value.split("T", 1)[0]
        return value

    def to_domain(self, settings: Settings) -> MigrationRequest:
        return MigrationRequest(
            host=self.hostname.strip(),
            port=self.port or settings.imap_default_port,
            secure=self.use_ssl,
            username=self.username,
            password=self.password,
            folders=self.folders or [settings.migration_default_folder],
            date_from=self.date_from,
            date_to=self.date_to,
            max_messages=self.max_messages,
            allow_insecure_tls=self.allow_insecure_tls,
            action=self.action,
        )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response with service status."""

    status: str
    timestamp: str
    services: dict[str, str]


def _error(message: str, status_code: int = 400, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


# ============================================================================
# Health Endpoints
# ============================================================================


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check() -> HealthResponse:
    """Basic health check endpoint."""
    settings = get_settings()
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=settings.app_version,
    )


@router.get("/health/ready", response_model=ReadinessResponse, tags=["health"])
def readiness_check() -> ReadinessResponse:
    """Readiness check with email store status."""
    settings = get_settings()
    services: dict[str, str] = {}

    if settings.email_store_backend == "postgres":
        health = get_postgres_client().health_check()
        services["postgres"] = health.get("status", "unknown")
    else:
        try:
            store = get_email_store()
            services["email_store"] = "healthy" if store is not None else "not_configured"
        except Exception as e:
            logger.warning(f"Email store check failed: {e}")
            services["email_store"] = f"error: {str(e)[:50]}"

    status = "ready" if all(s in ("healthy", "not_configured") for s in services.values()) else "degraded"
    return ReadinessResponse(
        status=status,
        timestamp=datetime.now(timezone.utc).isoformat(),
        services=services,
    )


@router.get("/health/live", tags=["health"])
async def liveness_check() -> dict[str, str]:
    """Kubernetes liveness probe endpoint."""
    return {"status": "alive"}


# ============================================================================
# Migration Endpoints
# ============================================================================


@router.post("/mail/migrate", tags=["migration"])
def migrate_mailbox(
    body: MigrateRequestBody,
    use_case: MigrateMailboxUseCase = Depends(get_migration_use_case),
) -> Any:
    """
    Test an IMAP account or migrate its messages into the email store.

    - action "test": returns {success, mailboxes}
    - action "migrate": returns {processed, imported, failed}
    - any fatal error: returns {error}
    """
    if not body.hostname or not body.username or not body.password:
        return _error("Missing required fields")

    request = body.to_domain(get_settings())
    logger.info(
        f"{request.action.value} request for {request.username}@{request.host}:{request.port} "
        f"folders={list(request.folders)}"
    )

    try:
        result = use_case.run(request)
    except ConnectError as e:
        return _error(e.user_message)
    except EnumerationError as e:
        return _error(str(e) or EnumerationError.user_message)
    except Exception as e:
        logger.exception(f"Migration failed: {e}")
        return _error("Migration failed", status_code=500)

    return result.model_dump()


@router.post("/mail/migrate/upload", tags=["migration"])
async def upload_archive(
    file: UploadFile | None = File(None),
    password: str | None = Form(None),
    use_case: ImportArchiveUseCase = Depends(get_archive_use_case),
) -> Any:
    """Import a ZIP archive of .eml, .json or .csv exports."""
    if file is None:
        return _error("No file provided")

    data = await file.read()
    logger.info(f"Importing archive {file.filename} ({len(data)} bytes)")

    try:
        result = await run_in_threadpool(use_case.run, data, password or None)
    except ArchiveError as e:
        extra = {"encrypted": True} if e.encrypted else {}
        return _error(str(e), **extra)
    except Exception as e:
        logger.exception(f"Archive import failed: {e}")
        return _error(f"Upload failed: {e}", status_code=500)

    return result.model_dump(exclude_none=True)
