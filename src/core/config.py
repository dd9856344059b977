"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for the community referral service, read from the environment or ``.env``."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Service
    app_name: str = Field(default="Community Referrals API")
    app_env: str = Field(default="development")
    debug: bool = Field(default=False)
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console", description="'json' or 'console'")

    # Storage
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/community",
        description="Postgres URL; plain postgresql:// is rewritten to asyncpg",
    )

    # Identity (Supabase Auth)
    supabase_url: str = Field(default="", description="Project URL, e.g. https://abc.supabase.co")
    supabase_anon_key: str = Field(default="", description="Public key sent as the apikey header")
    identity_timeout_seconds: float = Field(default=10.0)
    jwt_secret_key: str = Field(
        default="CHANGE-ME-IN-PRODUCTION",
        description="HS256 secret for legacy project tokens and tests",
    )
    jwt_algorithm: str = Field(default="HS256")
    jwt_expire_minutes: int = Field(default=30)

    # Referral program
    public_base_url: str = Field(
        default="http://localhost:5173",
        description="Public site origin; referral links are <origin>/register?ref=<code>",
    )
    profile_poll_delays: list[float] = Field(
        default=[0.5, 1.0],
        description="Seconds to wait between checks for the trigger-created profile row",
    )
    admin_emails: str = Field(default="", description="Comma-separated admin emails")

    # QR codes
    qr_size: int = Field(default=400, description="Approximate image width in pixels")
    qr_margin: int = Field(default=2, description="Quiet zone in modules")
    qr_error_correction: str = Field(default="M", description="One of L, M, Q, H")

    # HTTP
    rate_limit_enabled: bool = Field(default=True)
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed origins",
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def async_database_url(self) -> str:
        """Database URL with the asyncpg driver scheme SQLAlchemy's async engine needs."""
        url = self.database_url
        if url.startswith("postgres://"):
            url = "postgresql://" + url[len("postgres://"):]
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return url

    @computed_field  # type: ignore[prop-decorator]
    @property
    def supabase_auth_url(self) -> str:
        """GoTrue REST base, empty when no project is configured."""
        if not self.supabase_url:
            return ""
        return f"{self.supabase_url.rstrip('/')}/auth/v1"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def supabase_jwks_url(self) -> str:
        """Public keys for ES256 access tokens."""
        if not self.supabase_auth_url:
            return ""
        return f"{self.supabase_auth_url}/.well-known/jwks.json"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def email_redirect_url(self) -> str:
        """Where confirmation emails send the member back to."""
        return f"{self.public_base_url.rstrip('/')}/"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def admin_emails_list(self) -> list[str]:
        """Admin emails, lowercased."""
        return [e.strip().lower() for e in self.admin_emails.split(",") if e.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
