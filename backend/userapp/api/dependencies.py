"""Request Dependencies: accessors for the per-app components on app.state.

Invariants:
    - Components are built once in create_app() and only read here
    - Routes never reach for module-level singletons
"""

from fastapi import Request

from userapp.config import Settings
from userapp.core.availability import AvailabilityTracker
from userapp.core.repository_protocols import Datastore
from userapp.infrastructure.metrics import ServiceMetrics
from userapp.services.prober import AvailabilityProber
from userapp.services.user_service import UserService


def get_settings_from_app(request: Request) -> Settings:
    return request.app.state.settings


def get_tracker(request: Request) -> AvailabilityTracker:
    return request.app.state.tracker


def get_prober(request: Request) -> AvailabilityProber:
    return request.app.state.prober


def get_datastore(request: Request) -> Datastore:
    return request.app.state.datastore


def get_metrics(request: Request) -> ServiceMetrics:
    return request.app.state.metrics


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service
