"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from mailmigration.infrastructure import (
    configure_logging,
    get_postgres_client,
    get_settings,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}, email store: {settings.email_store_backend}")

    postgres = get_postgres_client() if settings.email_store_backend == "postgres" else None

    if postgres is not None:
        try:
            postgres.connect()
            postgres.setup_schema()
            logger.info("PostgreSQL connection established and schema ready")
        except Exception as e:
            logger.warning(f"PostgreSQL connection failed (non-fatal): {e}")

    yield

    # Cleanup on shutdown
    logger.info("Shutting down...")
    if postgres is not None:
        postgres.disconnect()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Mailbox migration pipeline for the office suite",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routes
    from mailmigration.api.routes import router

    app.include_router(router)

    return app


def run() -> None:
    """Serve the API with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_level=settings.log_level.lower())


# Create app instance
app = create_app()
