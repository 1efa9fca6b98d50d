"""Application configuration with Pydantic Settings.

Settings are loaded from environment variables and a .env file. The signing
secret for capability tokens and the JWT secret for access tokens have no
defaults and must be supplied by the deployment.

Examples:
    >>> from capstore.config import get_settings
    >>> settings = get_settings()
    >>> settings.TOKEN_TTL_SECONDS
    300

    >>> settings.get_storage_config()
    StorageConfig(root='./blob-store', shard_prefix_length=2, ...)

Tests:
    - tests/unit/test_config.py::TestSettings
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from capstore.storage.config import StorageConfig


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Application settings.

    Attributes:
        DATABASE_URL: Database connection string (SQLite or PostgreSQL)
        SIGNING_SECRET: HMAC key for upload/download capability tokens
        JWT_SECRET_KEY: HS256 key shared with the identity service
        STORAGE_ROOT: Directory holding the sharded blob files
        TOKEN_TTL_SECONDS: Lifetime of presigned upload/download URLs
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./capstore.db",
        description="Database connection string",
    )

    # Secrets
    SIGNING_SECRET: str = Field(
        ...,
        min_length=16,
        description="HMAC-SHA256 key for capability tokens",
    )
    JWT_SECRET_KEY: str = Field(
        ...,
        min_length=16,
        description="HS256 key used to verify bearer access tokens",
    )
    JWT_ACCESS_EXPIRE_MINUTES: int = Field(
        default=15,
        ge=1,
        description="Access token lifetime in minutes",
    )

    # Blob storage
    STORAGE_ROOT: str = Field(
        default="./blob-store",
        description="Blob storage root directory",
    )
    SHARD_PREFIX_LENGTH: int = Field(
        default=2,
        ge=1,
        le=8,
        description="Hex characters of the blob id used as shard directory",
    )
    TOKEN_TTL_SECONDS: int = Field(
        default=300,
        ge=1,
        description="Lifetime of presigned upload and download URLs",
    )
    PARTIAL_GRACE_SECONDS: int = Field(
        default=3600,
        ge=0,
        description="Age after which the startup sweep removes partial upload files",
    )
    STREAM_CHUNK_SIZE: int = Field(
        default=64 * 1024,
        ge=1024,
        description="Read size when streaming blobs back to clients",
    )
    PUBLIC_BASE_URL: str = Field(
        default="",
        description="Origin prepended to presigned URLs (empty = relative URLs)",
    )

    # Application Settings
    ENVIRONMENT: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment",
    )
    DEBUG: bool = Field(
        default=True,
        description="Enable debug mode",
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Root log level",
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL format."""
        valid_prefixes = ("sqlite", "postgresql", "postgres")
        if not any(v.startswith(prefix) for prefix in valid_prefixes):
            raise ValueError(
                f"DATABASE_URL must start with one of: {valid_prefixes}"
            )
        return v

    @field_validator("PUBLIC_BASE_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == Environment.PRODUCTION

    @property
    def is_sqlite(self) -> bool:
        """Check if using SQLite database."""
        return self.DATABASE_URL.startswith("sqlite")

    def get_storage_config(self) -> StorageConfig:
        """Build the storage package configuration from these settings.

        Returns:
            StorageConfig for the blob store and the orchestrator.
        """
        return StorageConfig(
            root=self.STORAGE_ROOT,
            shard_prefix_length=self.SHARD_PREFIX_LENGTH,
            token_ttl_seconds=self.TOKEN_TTL_SECONDS,
            chunk_size=self.STREAM_CHUNK_SIZE,
            partial_grace_seconds=self.PARTIAL_GRACE_SECONDS,
            public_base_url=self.PUBLIC_BASE_URL,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: The application settings.
    """
    return Settings()
