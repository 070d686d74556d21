"""
Personal Data Server Configuration

Environment-based settings for the Personal Data Server and the Edge Proxy.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, PostgresDsn, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = "Personal Data Server"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    allowed_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3001"])

    # Database: either DATABASE_URL or individual fields
    database_url_external: str = Field(default="", alias="DATABASE_URL")
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "admin"
    postgres_password: str = "asecretpassword"
    postgres_db: str = "prefs_testdb"

    @computed_field
    @property
    def database_url(self) -> str:
        """Async database connection URL."""
        if self.database_url_external:
            url = self.database_url_external
            # Replace postgres:// with postgresql+asyncpg://
            if url.startswith("postgres://"):
                url = "postgresql+asyncpg://" + url[len("postgres://"):]
            elif url.startswith("postgresql://"):
                url = "postgresql+asyncpg://" + url[len("postgresql://"):]
            return url
        return str(
            PostgresDsn.build(
                scheme="postgresql+asyncpg",
                username=self.postgres_user,
                password=self.postgres_password,
                host=self.postgres_host,
                port=self.postgres_port,
                path=self.postgres_db,
            )
        )

    @computed_field
    @property
    def database_url_sync(self) -> str:
        """Sync PostgreSQL URL for Alembic migrations."""
        if self.database_url_external:
            url = self.database_url_external
            if url.startswith("postgres://"):
                url = "postgresql://" + url[len("postgres://"):]
            elif url.startswith("postgresql+asyncpg://"):
                url = "postgresql://" + url[len("postgresql+asyncpg://"):]
            return url
        return str(
            PostgresDsn.build(
                scheme="postgresql",
                username=self.postgres_user,
                password=self.postgres_password,
                host=self.postgres_host,
                port=self.postgres_port,
                path=self.postgres_db,
            )
        )

    # Security
    secret_key: str = Field(
        default="CHANGE-ME-IN-PRODUCTION-use-openssl-rand-hex-32",
        description="Secret key for signing the SSO state parameter",
    )
    encryption_key: str = Field(
        default="CHANGE-ME-IN-PRODUCTION-use-fernet-generate-key",
        description="Fernet key for encrypting provider OAuth tokens at rest",
    )
    sso_state_expire_minutes: int = 10
    login_token_default_max_age: int = Field(
        default=3600,
        description="Login token lifetime (seconds) when the provider reports none",
    )

    # Google SSO (loaded into the AppSsoProvider table by scripts/seed.py)
    google_client_id: str = ""
    google_client_secret: str = ""

    # Public URLs
    pds_public_url: str = Field(
        default="http://localhost:3000",
        description="Externally visible base URL of the Personal Data Server",
    )
    sso_redirect_url: str = Field(
        default="",
        description=(
            "Edge Proxy /redirect URL that receives the login token after SSO. "
            "Leave empty to return the session result as JSON instead."
        ),
    )
    default_referer_url: str = "http://localhost:3001/"

    # Edge Proxy
    pds_server_url: str = Field(
        default="http://localhost:3000",
        description="Personal Data Server base URL the Edge Proxy relays to",
    )
    login_token_cookie_name: str = "PDS_loginToken"

    # Outbound call bounds (seconds)
    provider_timeout_seconds: float = 10.0
    relay_timeout_seconds: float = 10.0
    readiness_timeout_seconds: float = 2.0
    relay_read_attempts: int = 3

    # Error Monitoring
    sentry_dsn: str = Field(
        default="",
        description="Sentry DSN for error monitoring (leave empty to disable)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
