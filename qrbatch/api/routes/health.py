"""Health check endpoints.

Provides health status for Cloud Run probes and monitoring.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from qrbatch import __version__
from qrbatch.config import settings
from qrbatch.infra.database import verify_db_connection
from qrbatch.schemas.common import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Basic health check.

    Returns 200 if service is running.
    Used by Cloud Run startup probe.
    """
    return HealthResponse(
        status="healthy",
        version=__version__,
        environment=settings.environment,
        checks={},
    )


@router.get("/health/ready", response_model=HealthResponse)
async def health_ready() -> JSONResponse:
    """Readiness check.

    Verifies the database is reachable. Returns 503 when it is not so Cloud
    Run stops routing traffic to this instance.
    """
    checks = {"database": await verify_db_connection()}
    all_healthy = all(checks.values())

    body = HealthResponse(
        status="healthy" if all_healthy else "degraded",
        version=__version__,
        environment=settings.environment,
        checks=checks,
    )
    return JSONResponse(status_code=200 if all_healthy else 503, content=body.model_dump())


@router.get("/health/live", response_model=HealthResponse)
async def health_live() -> HealthResponse:
    """Liveness check.

    Basic check that service is responding.
    Used by Cloud Run liveness probe.
    """
    return HealthResponse(
        status="healthy",
        version=__version__,
        environment=settings.environment,
        checks={"alive": True},
    )
