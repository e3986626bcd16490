"""Application configuration with validation."""

from enum import Enum
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class ConfigurationError(Exception):
    """Raised when application configuration is invalid for the environment."""
    pass


_DEFAULT_JWT_SECRET = "dev-insecure-key-change-me"
_DEFAULT_CAPABILITY_SECRET = "dev-insecure-capability-key-change-me"


class Settings(BaseSettings):
    """
    Application settings with validation.

    Every value can be overridden through the environment (or a ``.env``
    file). Two secrets are kept apart on purpose: the identity secret signs
    bearer tokens, the capability secret signs per-entity access keys.
    """

    # Environment
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment (development/production)"
    )

    # CORS Configuration
    cors_allowed_origins: str = Field(
        default="http://localhost:4200",
        description="Allowed CORS origins (comma-separated)"
    )

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///./ncloud.db",
        description="Metadata store connection URL"
    )
    # Connection pool tuning (PostgreSQL only; ignored for SQLite).
    db_pool_size: int = Field(
        default=5,
        description="Number of persistent database connections"
    )
    db_max_overflow: int = Field(
        default=10,
        description="Extra connections allowed during traffic bursts"
    )
    db_pool_timeout: int = Field(
        default=30,
        description="Seconds to wait for a connection from the pool before raising"
    )
    db_pool_recycle: int = Field(
        default=1800,
        description="Seconds before a connection is recycled (prevents stale connections)"
    )

    # Identity tokens (bearer). Issuance lives in the user service;
    # this process only verifies them.
    jwt_secret_key: str = Field(
        default=_DEFAULT_JWT_SECRET,
        description="Signing secret for bearer identity tokens (override in production)"
    )

    # Capability tokens (DirectoryAccessKey / FileAccessKey)
    capability_secret_key: str = Field(
        default=_DEFAULT_CAPABILITY_SECRET,
        description="Signing secret for directory and file access keys"
    )

    # Physical storage
    storage_root: str = Field(
        default="/var/ncloud_upload",
        description="Root folder holding one sub-folder per directory id"
    )

    # Search index (Meilisearch-compatible). Empty URL = indexing disabled.
    search_url: str = Field(
        default="",
        description="Base URL of the search index (empty = disabled)"
    )
    search_api_key: str = Field(
        default="",
        description="API key for the search index"
    )
    search_timeout: float = Field(
        default=10.0,
        description="Seconds before a search index request times out"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: 'json' for structured, 'text' for human-readable"
    )

    def get_cors_origins(self) -> List[str]:
        """
        Get CORS origins as a list.

        Parses comma-separated string and validates no wildcards.
        """
        origins = [origin.strip() for origin in self.cors_allowed_origins.split(',') if origin.strip()]

        # SECURITY: Prevent wildcard CORS
        if "*" in origins:
            raise ValueError(
                "Wildcard CORS (*) not allowed. "
                "Specify explicit origins in CORS_ALLOWED_ORIGINS"
            )

        return origins

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard Python logging levels."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v_upper

    @field_validator('storage_root')
    @classmethod
    def validate_storage_root(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("STORAGE_ROOT cannot be empty")
        return v

    def validate_production_config(self) -> None:
        """Validate configuration for production environment.

        In production, fails startup if either signing secret uses its
        insecure default. In development, returns and lets main.py warn.

        Raises:
            ConfigurationError: If production config is insecure.
        """
        errors: list[str] = []

        if self.jwt_secret_key == _DEFAULT_JWT_SECRET:
            errors.append(
                "JWT_SECRET_KEY is using the default insecure value. "
                "Generate a secure key: openssl rand -hex 32"
            )

        if self.capability_secret_key == _DEFAULT_CAPABILITY_SECRET:
            errors.append(
                "CAPABILITY_SECRET_KEY is using the default insecure value. "
                "Anyone could forge access keys. Generate one: openssl rand -hex 32"
            )

        if self.capability_secret_key == self.jwt_secret_key:
            errors.append(
                "CAPABILITY_SECRET_KEY must differ from JWT_SECRET_KEY."
            )

        if errors:
            if self.environment == Environment.PRODUCTION:
                raise ConfigurationError(
                    "Production configuration is insecure:\n  - " + "\n  - ".join(errors)
                )
            return

    def uses_default_secrets(self) -> bool:
        return (
            self.jwt_secret_key == _DEFAULT_JWT_SECRET
            or self.capability_secret_key == _DEFAULT_CAPABILITY_SECRET
        )

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Global settings instance
settings = Settings()
