import os
import sys
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _should_load_env_file() -> str | None:
    """Determine if .env should be loaded.

    Local development reads `backend/.env` for convenience. Under pytest or
    in CI the environment is the only source, so tests see exactly what the
    fixtures set.
    """
    if any("pytest" in str(x) for x in sys.argv if x):
        return None
    if os.environ.get("CI") in ("1", "true", "True"):
        return None
    return ".env"


class Settings(BaseSettings):
    # Environment configuration
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment: 'development', 'staging', 'production' or 'test'",
    )

    # Server binding (nginx terminates TLS and proxies to loopback)
    HOST: str = Field(default="127.0.0.1", description="Interface to bind")
    PORT: int = Field(default=3458, description="Port to bind")

    CORS_ORIGINS: List[str] = Field(
        default=["https://alali.om", "https://www.alali.om"],
        description="Allowed CORS origins (comma-separated in env var)",
    )

    # Site identity used in outbound mail
    SITE_NAME: str = Field(
        default="alali.om",
        description="Site name shown in the subject line and footer of relayed mail",
    )

    # Mail routing
    MAIL_FROM_ADDRESS: str = Field(
        default="no-reply@alali.om",
        description="System sender address for relayed submissions",
    )
    MAIL_FROM_NAME: str = Field(
        default="Alali Investment",
        description="Display name for the system sender",
    )
    MAIL_CC_ADDRESS: str = Field(
        default="ali@alali.om",
        description="Address copied on every relayed submission",
    )

    # Email Provider Settings
    EMAIL_PROVIDER: str = Field(
        default="smtp",
        description="Email provider: 'smtp' or 'console'",
    )
    SMTP_HOST: str = Field(
        default="127.0.0.1",
        description="SMTP relay hostname (local Postfix)",
    )
    SMTP_PORT: int = Field(
        default=25,
        description="SMTP relay port",
    )
    SMTP_USER: str = Field(
        default="",
        description="SMTP username (empty for an unauthenticated local relay)",
    )
    SMTP_PASSWORD: str = Field(
        default="",
        description="SMTP password",
    )
    SMTP_USE_TLS: bool = Field(
        default=False,
        description="Use STARTTLS for SMTP connection (port 587)",
    )
    SMTP_USE_SSL: bool = Field(
        default=False,
        description="Use implicit SSL for SMTP connection (port 465)",
    )
    SMTP_TIMEOUT: float = Field(
        default=30.0,
        description="Seconds to wait on the SMTP relay before giving up",
    )

    # Contact form policy
    CONTACT_MAX_FIELD_LENGTH: int = Field(
        default=2000,
        gt=0,
        description="Maximum characters kept per submitted field",
    )
    CONTACT_RATE_LIMIT: str = Field(
        default="5/hour",
        description="Submissions allowed per client address (limits notation)",
    )
    RATE_LIMIT_STORAGE_URI: str = Field(
        default="memory://",
        description="Counter store for the rate limiter, e.g. memory:// or redis://host:6379",
    )
    MAX_BODY_BYTES: int = Field(
        default=10 * 1024,
        gt=0,
        description="Maximum accepted request body size in bytes",
    )
    TRUSTED_PROXY_HOPS: int = Field(
        default=1,
        ge=0,
        description="Number of reverse proxies whose X-Forwarded-For entries are trusted",
    )

    # Performance settings
    SLOW_REQUEST_THRESHOLD: float = Field(
        default=1.0,
        description="Log warning for requests slower than this (seconds)",
    )

    # Logging
    LOG_FILE: str = Field(
        default="logs/contact.log",
        description="Rotating log file path; empty disables the file sink",
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | List[str]) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("EMAIL_PROVIDER")
    @classmethod
    def normalize_provider(cls, v: str) -> str:
        return v.strip().lower()

    model_config = SettingsConfigDict(
        env_file=_should_load_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",  # Allow extra env vars (e.g., SENTRY_DSN) without validation errors
    )


settings = Settings()


def get_settings() -> Settings:
    """Get the settings instance (for dependency injection)."""
    return settings
