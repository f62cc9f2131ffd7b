"""Prometheus Metrics: availability gauge, registration counters, HTTP request metrics.

Invariants:
    - database_connection_status is read from the tracker at scrape time (1 = up,
      0 = down); nothing is cached beyond the tracker's own snapshot
    - Each ServiceMetrics owns its CollectorRegistry, so building several apps
      in one process (tests) never hits duplicate-registration errors
    - Label sets stay bounded: routes are recorded by template, not raw path

Design Decisions:
    - Custom collector (GaugeMetricFamily) for the status gauge instead of a
      Gauge that someone must remember to set after every report
    - Transition and rejection counters are fed by hooks (tracker observer,
      guard on_rejected) so core/ stays free of prometheus_client
"""

from typing import Iterator

from prometheus_client import (
    CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Histogram, generate_latest,
)
from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector

from userapp.core.availability import AvailabilityTracker
from userapp.core.domain_types import AvailabilityEvent


class AvailabilityGaugeCollector(Collector):
    """Publishes the tracker's current state on every scrape."""

    def __init__(
        self,
        tracker: AvailabilityTracker,
        name: str = "database_connection_status",
    ):
        self._tracker = tracker
        self._name = name

    def collect(self) -> Iterator[GaugeMetricFamily]:
        state = self._tracker.snapshot()
        yield GaugeMetricFamily(
            self._name,
            "Datastore reachability as last observed (1 = up, 0 = down)",
            value=1 if state.is_up else 0,
        )
        yield GaugeMetricFamily(
            "database_consecutive_failures",
            "Failed checks since the datastore was last seen up",
            value=state.consecutive_failures,
        )


class ServiceMetrics:
    """All metrics of one service instance, bound to a private registry."""

    def __init__(self, registry: CollectorRegistry | None = None):
        self.registry = registry or CollectorRegistry()

        self.user_registrations = Counter(
            "user_registrations",
            "Total number of user registrations",
            registry=self.registry,
        )
        self.user_deletions = Counter(
            "user_deletions",
            "Total number of deleted users",
            registry=self.registry,
        )
        self.status_transitions = Counter(
            "database_status_transitions",
            "Datastore availability transitions by event (lost, restored)",
            ["event"],
            registry=self.registry,
        )
        self.unavailable_rejections = Counter(
            "datastore_unavailable_rejections",
            "Operations answered with 503 because the datastore was down",
            ["operation"],
            registry=self.registry,
        )
        self.http_requests = Counter(
            "http_requests",
            "Total HTTP requests",
            ["method", "route", "status_code"],
            registry=self.registry,
        )
        self.http_request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "route"],
            registry=self.registry,
        )

    def bind_tracker(self, tracker: AvailabilityTracker) -> None:
        """Register the status gauge and count transitions for this tracker."""
        self.registry.register(AvailabilityGaugeCollector(tracker))
        tracker.subscribe(self.record_transition)

    def record_transition(self, event: AvailabilityEvent) -> None:
        self.status_transitions.labels(event=event.transition.value).inc()

    def record_rejection(self, operation: str) -> None:
        self.unavailable_rejections.labels(operation=operation).inc()

    def observe_request(
        self, method: str, route: str, status_code: int, duration: float,
    ) -> None:
        self.http_requests.labels(
            method=method, route=route, status_code=str(status_code),
        ).inc()
        self.http_request_duration.labels(
            method=method, route=route,
        ).observe(duration)

    def render(self) -> tuple[bytes, str]:
        """Prometheus text exposition and its content type."""
        return generate_latest(self.registry), CONTENT_TYPE_LATEST
