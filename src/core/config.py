"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Warden IAM")
    app_env: str = Field(default="development")
    debug: bool = Field(default=False)

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Logging
    log_level: str = Field(default="INFO")
    log_json: bool = Field(
        default=False,
        description="Render logs as JSON (always on in production)",
    )

    # Database
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/warden",
        description="PostgreSQL connection URL with asyncpg driver",
    )
    store_timeout_seconds: float = Field(
        default=5.0,
        description="Per-statement timeout for backing store calls",
    )
    store_retry_attempts: int = Field(
        default=3,
        description="Attempts for an operation that hits a transient store failure",
    )
    store_retry_base_delay_ms: int = Field(
        default=50,
        description="Initial backoff between transient-failure retries (doubles each retry)",
    )

    # JWT
    jwt_secret_key: str = Field(
        default="CHANGE-ME-IN-PRODUCTION",
        description="Secret key for signing access tokens",
    )
    jwt_algorithm: str = Field(default="HS256")
    jwt_issuer: str = Field(default="warden")
    access_token_expire_minutes: int = Field(default=15)
    refresh_token_expire_days: int = Field(default=7)

    # Brute-force lockout
    lockout_max_attempts: int = Field(default=5)
    lockout_window_minutes: int = Field(default=15)
    lockout_duration_minutes: int = Field(default=30)

    # Invitations
    invitation_expiry_days: int = Field(default=7)
    invitation_sweep_interval_seconds: int = Field(
        default=3600,
        description="How often the background sweep marks stale invitations expired",
    )

    # Rate Limiting
    rate_limit_enabled: bool = Field(
        default=True,
        description="Enable/disable rate limiting (disable for tests)",
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed origins",
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def async_database_url(self) -> str:
        """Ensure the database URL uses the asyncpg driver scheme.

        Hosting providers usually hand out a plain ``postgresql://`` URL.
        SQLAlchemy's async engine requires ``postgresql+asyncpg://``.
        """
        url = self.database_url
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return url

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
