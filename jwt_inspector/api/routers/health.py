"""
Health check endpoints for monitoring and orchestration.
"""

from datetime import datetime, timezone
from fastapi import APIRouter, status
from pydantic import BaseModel

from jwt_inspector.core.config import settings


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    service: str
    version: str
    timestamp: datetime


router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check endpoint",
    description="Returns the health status of the service for monitoring and orchestration."
)
async def health_check() -> HealthResponse:
    """
    Perform a basic health check.

    Returns:
        HealthResponse: Current health status of the service
    """
    return HealthResponse(
        status="healthy",
        service=settings.APP_NAME,
        version=settings.APP_VERSION,
        timestamp=datetime.now(timezone.utc)
    )


@router.get(
    "/ready",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness check endpoint",
    description="Returns readiness status indicating if the service can accept requests."
)
async def readiness_check() -> HealthResponse:
    """
    Perform a readiness check.

    The service has no external dependencies (no database, no key
    fetching), so it is ready as soon as it accepts requests.

    Returns:
        HealthResponse: Readiness status of the service
    """
    return HealthResponse(
        status="ready",
        service=settings.APP_NAME,
        version=settings.APP_VERSION,
        timestamp=datetime.now(timezone.utc)
    )
