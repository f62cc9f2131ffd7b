"""Health & Readiness Probes: liveness and readiness endpoints for container orchestration.

Invariants:
    - GET /health always returns 200 while the process is up (liveness); the body
      reports a fresh datastore check, status "healthy" or "degraded"
    - GET /health/ready returns 503 if the datastore is unreachable (readiness)
    - Both use prober.probe_now(), never the cached tracker state and never the
      datastore guard; concurrent calls share one probe

Design Decisions:
    - Separate liveness/readiness: liveness restarts, readiness removes from the
      load balancer; a down datastore must not get the process restarted
"""

import logging
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from userapp.api.dependencies import get_prober, get_settings_from_app
from userapp.config import Settings
from userapp.services.prober import AvailabilityProber

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/health", tags=["health"])


def _database_block(prober: AvailabilityProber, up: bool) -> dict:
    state = prober.tracker.snapshot()
    return {
        "status": "up" if up else "down",
        "consecutive_failures": state.consecutive_failures,
        "last_checked_at": state.to_dict()["last_checked_at"],
        "error": None if up else prober.last_error,
    }


@router.get("", status_code=status.HTTP_200_OK)
async def health_check(
    prober: AvailabilityProber = Depends(get_prober),
    settings: Settings = Depends(get_settings_from_app),
):
    """Liveness probe with a fresh datastore check in the body."""
    up = await prober.probe_now()
    return {
        "status": "healthy" if up else "degraded",
        "service": settings.service_name,
        "version": settings.service_version,
        "backend": settings.datastore_backend.value,
        "checks": {"database": _database_block(prober, up)},
    }


@router.get("/ready")
async def readiness_check(prober: AvailabilityProber = Depends(get_prober)):
    """Readiness probe: 503 while the datastore is unreachable."""
    up = await prober.probe_now()
    if not up:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "database_unavailable",
                "checks": {"database": _database_block(prober, up)},
            },
        )
    return {"status": "ready", "checks": {"database": _database_block(prober, up)}}
