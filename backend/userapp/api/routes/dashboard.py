"""System Dashboard: one JSON document describing the running service.

Invariants:
    - Datastore status comes from the cached tracker state (no probe, no I/O)
    - While degraded, total_users is null and the response is still 200;
      the dashboard never hangs or fails because the datastore is down
"""

import logging
import platform

from fastapi import APIRouter, Depends

from userapp.api.dependencies import (
    get_prober, get_settings_from_app, get_user_service,
)
from userapp.config import Settings
from userapp.core.errors import ServiceUnavailableError
from userapp.services.prober import AvailabilityProber
from userapp.services.user_service import UserService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/dashboard", tags=["dashboard"])

API_ENDPOINTS = {
    "POST /api/users": "Register new user",
    "GET /api/users": "List all users",
    "GET /api/users/{id}": "Get user by ID",
    "DELETE /api/users/{id}": "Delete user",
    "GET /api/users/stats": "User statistics",
    "GET /health": "Health check",
    "GET /health/ready": "Readiness check",
    "GET /metrics": "Prometheus metrics",
}


@router.get("")
async def dashboard(
    service: UserService = Depends(get_user_service),
    prober: AvailabilityProber = Depends(get_prober),
    settings: Settings = Depends(get_settings_from_app),
):
    state = prober.tracker.snapshot()
    total_users = None
    if state.is_up:
        try:
            total_users = await service.count_users()
        except ServiceUnavailableError:
            logger.warning("Dashboard rendered without user count: datastore down")
    # Re-read: the count above may have flipped the tracker
    state = prober.tracker.snapshot()

    return {
        "app_info": {
            "name": settings.service_name,
            "version": settings.service_version,
            "backend": settings.datastore_backend.value,
            "python_version": platform.python_version(),
        },
        "api_endpoints": API_ENDPOINTS,
        "system_stats": {
            "total_users": total_users,
            "db_status": "Connected" if state.is_up else "Disconnected",
        },
        "db_connected": state.is_up,
        "availability": state.to_dict(),
        "prober": {
            "running": prober.running,
            "interval_seconds": prober.interval_seconds,
            "timeout_seconds": prober.timeout_seconds,
            "attempts": prober.attempts,
            "skipped_ticks": prober.skipped_ticks,
        },
    }
