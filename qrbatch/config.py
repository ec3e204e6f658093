"""Application configuration using Pydantic Settings.

Reads configuration from environment variables with sensible defaults.
All secrets should be provided via environment variables (from Secret Manager).
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Application
    # =========================================================================
    environment: Literal["prod", "staging", "dev"] = Field(
        default="dev",
        description="Environment name",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    # =========================================================================
    # Database (Cloud SQL via Unix socket)
    # =========================================================================
    db_user: str = Field(
        default="qrbatch_app",
        description="Database user",
    )
    db_password: str = Field(
        default="",
        description="Database password (from Secret Manager)",
    )
    db_name: str = Field(
        default="qrbatch",
        description="Database name",
    )
    db_connection_name: str = Field(
        default="",
        description="Cloud SQL connection name (project:region:instance)",
    )
    db_host: str = Field(
        default="localhost",
        description="Database host (for local development)",
    )
    db_port: int = Field(
        default=5432,
        description="Database port (for local development)",
    )
    db_pool_size: int = Field(
        default=5,
        description="Database connection pool size",
    )
    db_pool_max_overflow: int = Field(
        default=10,
        description="Max overflow connections beyond pool size",
    )
    database_url_override: str = Field(
        default="",
        description="Full SQLAlchemy URL; takes precedence over the db_* fields",
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def database_url(self) -> str:
        """Build database URL based on environment.

        In Cloud Run, uses Unix socket for Cloud SQL.
        In local dev, uses TCP connection.
        """
        if self.database_url_override:
            return self.database_url_override
        if self.db_connection_name:
            # Cloud Run: Unix socket connection
            socket_path = f"/cloudsql/{self.db_connection_name}"
            return (
                f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
                f"@/{self.db_name}?host={socket_path}"
            )
        # Local development: TCP connection
        return (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    # =========================================================================
    # Cloud Storage
    # =========================================================================
    gcs_bucket: str = Field(
        default="qrbatch-exports-dev",
        description="Cloud Storage bucket for export artifacts",
    )
    use_local_storage: bool = Field(
        default=False,
        description="Use local filesystem instead of GCS (for development)",
    )
    local_storage_root: str = Field(
        default="./local_storage",
        description="Root directory for local storage when use_local_storage=True",
    )
    public_base_url: str = Field(
        default="http://localhost:8000/files",
        description="Base URL that serves local_storage_root (local storage only)",
    )

    # =========================================================================
    # Batch generation
    # =========================================================================
    code_prefix: str = Field(
        default="QR_",
        description="Namespace prefix for unit QR codes",
    )
    master_prefix: str = Field(
        default="MC_",
        description="Namespace prefix for master carton identifiers",
    )
    max_total_units: int = Field(
        default=1_000_000,
        gt=0,
        description="Upper bound on units accepted in a single batch request",
    )

    # =========================================================================
    # Logging
    # =========================================================================
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    log_json: bool = Field(
        default=True,
        description="Output logs as JSON (for Cloud Logging)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Singleton instance for convenience
settings = get_settings()
