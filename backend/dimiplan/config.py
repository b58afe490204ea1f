"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Application
    app_name: str = "Dimiplan"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # Database
    # If database_url_override is set (e.g., sqlite+aiosqlite for tests), it takes precedence
    database_url_override: str | None = None
    db_host: str = "localhost"
    db_port: int = 3306
    db_user: str = "dimiplan"
    db_pass: str = ""
    db_name: str = "dimiplan"

    @computed_field
    @property
    def database_url(self) -> str:
        """Get async database URL. Uses override if provided, otherwise constructs from parts."""
        if self.database_url_override:
            url = self.database_url_override
            # Replace scheme for async driver
            if url.startswith("mysql://"):
                url = url.replace("mysql://", "mysql+aiomysql://", 1)
            elif url.startswith("mysql+pymysql://"):
                url = url.replace("mysql+pymysql://", "mysql+aiomysql://", 1)
            return url
        return (
            f"mysql+aiomysql://{self.db_user}:{self.db_pass}@{self.db_host}:{self.db_port}"
            f"/{self.db_name}?charset=utf8mb4"
        )

    @computed_field
    @property
    def database_url_sync(self) -> str:
        """Get sync database URL (for Alembic). Uses override if provided, otherwise constructs from parts."""
        if self.database_url_override:
            url = self.database_url_override
            if url.startswith("mysql://"):
                url = url.replace("mysql://", "mysql+pymysql://", 1)
            elif url.startswith("mysql+aiomysql://"):
                url = url.replace("mysql+aiomysql://", "mysql+pymysql://", 1)
            elif url.startswith("sqlite+aiosqlite://"):
                url = url.replace("sqlite+aiosqlite://", "sqlite://", 1)
            return url
        return (
            f"mysql+pymysql://{self.db_user}:{self.db_pass}@{self.db_host}:{self.db_port}"
            f"/{self.db_name}?charset=utf8mb4"
        )

    # Encryption at rest
    # Empty defaults so the secret loader can report every missing value at once
    master_key: str = Field(
        default="", validation_alias=AliasChoices("master_key", "crypto_master_key")
    )
    master_iv_seed: str = Field(
        default="", validation_alias=AliasChoices("master_iv_seed", "crypto_master_iv")
    )
    uid_salt: str = ""
    master_key_version: int = Field(default=0, ge=0, le=99)

    # Retired key pair, kept readable while rows are re-encrypted lazily
    previous_master_key: str | None = None
    previous_master_iv_seed: str | None = None
    previous_master_key_version: int | None = Field(default=None, ge=0, le=99)

    key_cache_size: int = 1024

    # Session / JWT
    session_secret: str = ""
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7  # 7 days

    # Google OAuth
    google_client_id: str = ""

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Cookies
    # Set to true when frontend and backend are on different domains
    cookie_cross_domain: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def sanitize_error(error: Exception, *, generic_message: str = "An internal error occurred.") -> str:
    """
    Return a user-safe error message.

    In development, returns the full exception string for debugging.
    In staging/production, returns a generic message to avoid leaking internals.
    """
    settings = get_settings()
    if settings.environment == "development":
        return str(error)
    return generic_message
