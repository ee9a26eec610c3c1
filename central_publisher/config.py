"""Application configuration using pydantic-settings."""

import base64
from functools import lru_cache
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from central_publisher.core.exceptions import ValidationError

# Load .env file without clobbering variables already set by the caller
load_dotenv()

DEFAULT_CENTRAL_API_URL = "https://central.sonatype.com/api/v1/publisher"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = True

    # API Server
    api_host: str = "127.0.0.1"
    api_port: int = 8000

    # Central Portal
    central_api_url: str = DEFAULT_CENTRAL_API_URL
    central_bearer_token: str = Field(default="")
    central_username: str = Field(default="")
    central_password: str = Field(default="")
    central_bearer_create: bool = False  # Build the token from username:password
    central_request_timeout: float = 60.0
    central_namespace: str | None = None

    # Deployment lifecycle
    publishing_type: str = "USER_MANAGED"
    max_wait_validation: float = Field(default=300.0, gt=0)
    max_wait_publishing: float = Field(default=600.0, gt=0)
    poll_interval: float = Field(default=5.0, gt=0)
    wait_for_completion: bool = True
    status_retries: int = Field(default=0, ge=0)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["console", "json"] = "console"
    log_file: str | None = None

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"


class PortalConfig(BaseModel):
    """Immutable connection settings for one portal client."""

    model_config = ConfigDict(frozen=True)

    base_url: str = DEFAULT_CENTRAL_API_URL
    bearer_token: str = Field(..., min_length=1, repr=False)
    request_timeout: float = 60.0


def resolve_bearer_token(settings: "Settings") -> str:
    """Pick the bearer token from the configured credential sources.

    Order: an explicit token, then a token built from username:password when
    ``central_bearer_create`` is set, then the password used verbatim.
    """
    if settings.central_bearer_token:
        return settings.central_bearer_token

    if settings.central_bearer_create:
        if not settings.central_username or not settings.central_password:
            raise ValidationError(
                "central_bearer_create is set but username or password is missing",
                {"username_set": bool(settings.central_username)},
            )
        credentials = f"{settings.central_username}:{settings.central_password}"
        return base64.b64encode(credentials.encode("utf-8")).decode("ascii")

    if settings.central_password:
        return settings.central_password

    raise ValidationError(
        "Bearer token must be provided via CENTRAL_BEARER_TOKEN "
        "or CENTRAL_USERNAME/CENTRAL_PASSWORD"
    )


def build_portal_config(settings: "Settings | None" = None) -> PortalConfig:
    """Build the client configuration from settings."""
    settings = settings or get_settings()
    return PortalConfig(
        base_url=(settings.central_api_url or DEFAULT_CENTRAL_API_URL).rstrip("/"),
        bearer_token=resolve_bearer_token(settings),
        request_timeout=settings.central_request_timeout,
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
