"""
Health check endpoint for monitoring.
"""

from fastapi import APIRouter

from ..models.common import HealthStatus

router = APIRouter()


@router.get("/health", response_model=HealthStatus)
async def health_check():
    """Liveness probe; never touches the upstream model."""
    return HealthStatus(status="OK")
