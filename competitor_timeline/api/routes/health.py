"""
Service health check.
"""

import time

from fastapi import APIRouter, Depends

from competitor_timeline import __version__
from competitor_timeline.api.dependencies import get_database
from competitor_timeline.api.models import ComponentHealth, HealthResponse
from competitor_timeline.storage.database import Database

router = APIRouter()


async def _check_database(db: Database) -> ComponentHealth:
    """Check database connectivity and measure latency."""
    start = time.perf_counter()
    try:
        healthy = await db.health_check()
    except Exception as e:
        return ComponentHealth(
            status="unhealthy",
            latency_ms=round((time.perf_counter() - start) * 1000, 2),
            details={"error": str(e)},
        )
    return ComponentHealth(
        status="healthy" if healthy else "unhealthy",
        latency_ms=round((time.perf_counter() - start) * 1000, 2),
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(db: Database = Depends(get_database)) -> HealthResponse:
    """Overall status is ``degraded`` when any component is unhealthy."""
    components = {"database": await _check_database(db)}
    overall = (
        "healthy" if all(c.status == "healthy" for c in components.values()) else "degraded"
    )
    return HealthResponse(status=overall, version=__version__, components=components)
