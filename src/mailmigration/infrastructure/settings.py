"""Application settings using Pydantic Settings for configuration management."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Office Suite Mail Migration"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # IMAP
    imap_default_port: int = 993
    imap_timeout_seconds: float = 30.0

    # Migration
    migration_chunk_size: int = Field(default=50, ge=1)
    migration_default_folder: str = "INBOX"

    # Email store ("none" keeps runs working but imports nothing)
    email_store_backend: Literal["postgres", "sqlite", "none"] = "none"
    emails_table: str = Field(default="emails", pattern=r"^[A-Za-z_][A-Za-z0-9_]*$")
    sqlite_path: Path = Path("./data/emails.db")

    # PostgreSQL
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "postgres"
    postgres_password: SecretStr = Field(default=SecretStr("postgres"))
    postgres_db: str = "office_suite"
    postgres_pool_size: int = Field(default=5, ge=1)

    @computed_field
    @property
    def postgres_dsn(self) -> str:
        """Construct PostgreSQL connection string."""
        password = self.postgres_password.get_secret_value()
        return f"postgresql://{self.postgres_user}:{password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
