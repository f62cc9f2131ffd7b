"""User Service API: FastAPI application factory and entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Exactly one AvailabilityTracker per app, built in create_app() and shared
      by the prober, the guard, the gauge and every route through app.state
    - Global error handlers map UserAppError to structured JSON responses; 503s
      carry Retry-After
    - Datastore preparation (schema, indexes) follows the first successful probe,
      whether that probe happens at startup or after a later recovery
    - The periodic prober is started in the lifespan and stopped before the
      datastore is closed

Design Decisions:
    - Factory over module-level wiring: tests build apps around fake datastores
    - Components live on app.state so they exist even when the ASGI lifespan is
      not run (httpx ASGITransport in tests)
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from userapp.api.error_handlers import register_error_handlers
from userapp.api.routes import dashboard, health, metrics, users
from userapp.config import Settings, get_settings
from userapp.core.availability import AvailabilityTracker
from userapp.core.domain_types import DatastoreBackend
from userapp.core.guarded import DatastoreGuard
from userapp.core.repository_protocols import Datastore
from userapp.infrastructure.metrics import ServiceMetrics
from userapp.infrastructure.observability import TransitionLogger, setup_logging
from userapp.services.datastore_setup import DatastorePreparer
from userapp.services.prober import AvailabilityProber
from userapp.services.user_service import UserService

logger = logging.getLogger(__name__)


def build_datastore(settings: Settings) -> Datastore:
    """Instantiate the configured datastore flavor (no connection is opened)."""
    if settings.datastore_backend is DatastoreBackend.DOCUMENT:
        from userapp.infrastructure.document_store import (
            DocumentDatastore, create_mongo_client,
        )
        client = create_mongo_client(
            settings.mongo_url, settings.probe_timeout_seconds,
        )
        return DocumentDatastore(client, settings.mongo_database)

    from userapp.infrastructure.database import (
        RelationalDatastore, create_engine_from_url,
    )
    engine = create_engine_from_url(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        connect_timeout=settings.probe_timeout_seconds,
    )
    return RelationalDatastore(
        engine, auto_create_schema=settings.database_auto_create_schema,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings: Settings = app.state.settings
    prober: AvailabilityProber = app.state.prober
    datastore: Datastore = app.state.datastore
    preparer: DatastorePreparer = app.state.preparer

    setup_logging(settings.log_level, settings.log_format)
    # A successful probe runs preparation through the prober's success hook
    await prober.probe_now()
    if not preparer.prepared:
        logger.warning(
            "Datastore unavailable at startup; serving degraded until it recovers",
            extra={"backend": datastore.name},
        )
    prober.start()
    logger.info(f"{settings.service_name} started ({datastore.name} datastore)")
    yield
    logger.info(f"{settings.service_name} shutting down")
    await prober.stop()
    await datastore.close()


def create_app(
    settings: Settings | None = None,
    datastore: Datastore | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    datastore = datastore or build_datastore(settings)

    tracker = AvailabilityTracker(
        initially_up=settings.availability_optimistic_start,
    )
    service_metrics = ServiceMetrics()
    service_metrics.bind_tracker(tracker)
    tracker.subscribe(TransitionLogger(datastore.name))

    guard = DatastoreGuard(
        tracker,
        retry_after_ms=int(settings.probe_interval_seconds * 1000),
        on_rejected=service_metrics.record_rejection,
    )
    preparer = DatastorePreparer(datastore, guard)
    prober = AvailabilityProber(
        tracker,
        datastore.ping,
        interval_seconds=settings.probe_interval_seconds,
        timeout_seconds=settings.probe_timeout_seconds,
        on_success=preparer.ensure_prepared,
    )

    app = FastAPI(
        title="User Service API",
        version=settings.service_version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.datastore = datastore
    app.state.tracker = tracker
    app.state.prober = prober
    app.state.guard = guard
    app.state.preparer = preparer
    app.state.metrics = service_metrics
    app.state.user_service = UserService(
        datastore.users, guard, service_metrics,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def record_request_metrics(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        route = request.scope.get("route")
        service_metrics.observe_request(
            request.method,
            getattr(route, "path", "unmatched"),
            response.status_code,
            time.perf_counter() - start,
        )
        return response

    # Routes: explicit registration
    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(dashboard.router)
    app.include_router(metrics.router)

    register_error_handlers(app)
    return app


app = create_app()
