"""Health check endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

from central_publisher import __version__
from central_publisher.config import get_settings

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    version: str
    environment: str
    portal_url: str
    credentials_configured: bool
    timestamp: datetime


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Report service health without contacting the portal."""
    settings = get_settings()
    return HealthResponse(
        version=__version__,
        environment=settings.app_env,
        portal_url=settings.central_api_url,
        credentials_configured=bool(
            settings.central_bearer_token or settings.central_password
        ),
        timestamp=datetime.now(timezone.utc),
    )
