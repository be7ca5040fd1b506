# =============================================================================
# Health Check Router
# =============================================================================
# Endpoints for container health checks.
# =============================================================================

from fastapi import APIRouter
from pydantic import BaseModel

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Basic health check endpoint.

    Returns 200 if the service is running.
    """
    from app import __version__

    return HealthResponse(status="healthy", version=__version__)
