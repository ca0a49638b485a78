"""Application settings and configuration.

This module defines all configuration options for the order-management
service. Settings are loaded from environment variables with sensible
defaults; an optional `.env` file at the project root is honoured too.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Order Flow", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./auth.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Redis configuration for shared replay / session state
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")

    # Auto-login credential settings (shared out of band with the issuers)
    jwt_secret: str = Field(alias="JWT_SECRET", min_length=1)
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    auto_login_token_ttl_seconds: int = Field(
        default=300,
        alias="AUTO_LOGIN_TOKEN_TTL_SECONDS",
    )
    auto_login_clock_skew_seconds: int = Field(
        default=30,
        alias="AUTO_LOGIN_CLOCK_SKEW_SECONDS",
    )
    auto_login_audience: str = Field(default="website2", alias="AUTO_LOGIN_AUDIENCE")
    auto_login_issuers: list[str] = Field(
        default=["website1", "shopify-app"],
        alias="AUTO_LOGIN_ISSUERS",
    )
    # Tag used when this deployment mints tokens itself (scripts, tests)
    auto_login_issuer_tag: str = Field(default="website1", alias="AUTO_LOGIN_ISSUER_TAG")
    base_url: str = Field(default="http://localhost:3000", alias="BASE_URL")

    # Backends for process-wide state: "memory" or "redis"
    replay_backend: str = Field(default="memory", alias="REPLAY_BACKEND")
    session_backend: str = Field(default="memory", alias="SESSION_BACKEND")

    # Server-side sessions
    session_ttl_seconds: int = Field(default=24 * 60 * 60, alias="SESSION_TTL_SECONDS")
    session_cookie_name: str = Field(default="orderflow_session", alias="SESSION_COOKIE_NAME")
    session_cookie_secure: bool = Field(default=False, alias="SESSION_COOKIE_SECURE")

    # First-start administrator account
    admin_bootstrap: bool = Field(default=True, alias="ADMIN_BOOTSTRAP")
    admin_username: str = Field(default="admin", alias="ADMIN_USERNAME")
    admin_password: str | None = Field(default=None, alias="ADMIN_PASSWORD")

    # CORS configuration
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def replay_window_seconds(self) -> int:
        """Return how long a consumed credential must be remembered.

        A credential is accepted for its lifetime plus the tolerated clock
        skew, so its fingerprint has to outlive both.
        """
        return self.auto_login_token_ttl_seconds + self.auto_login_clock_skew_seconds


settings = Settings()  # type: ignore[call-arg]
