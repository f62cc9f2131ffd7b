"""Datastore Guard: the availability policy around every datastore-touching operation.

Invariants:
    - Tracker DOWN: ServiceUnavailableError raised before the operation is invoked
    - ConnectivityError from the operation: tracker marked down, re-raised as
      ServiceUnavailableError (chained), never surfaced raw
    - Any other exception (domain conflicts, not-found) propagates unchanged
      and leaves the tracker untouched
    - Success returns the operation's result unchanged; the guard does not
      report success (the prober is the only up-signal)

Design Decisions:
    - One higher-order run() instead of try/except copies in every handler
    - on_rejected hook keeps metrics out of core (infrastructure subscribes)
"""

import logging
from typing import Awaitable, Callable, TypeVar

from userapp.core.availability import AvailabilityTracker
from userapp.core.errors import ConnectivityError, ServiceUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DatastoreGuard:
    """Fail-fast wrapper bound to one AvailabilityTracker."""

    def __init__(
        self,
        tracker: AvailabilityTracker,
        retry_after_ms: int | None = None,
        on_rejected: Callable[[str], None] | None = None,
    ):
        self.tracker = tracker
        self._retry_after_ms = retry_after_ms
        self._on_rejected = on_rejected

    async def run(
        self,
        operation_name: str,
        operation: Callable[..., Awaitable[T]],
        *args,
        **kwargs,
    ) -> T:
        """Run operation under the availability policy."""
        if not self.tracker.is_up():
            logger.warning(
                f"Rejected {operation_name}: datastore marked down",
                extra={"operation": operation_name},
            )
            raise self._unavailable(operation_name)

        try:
            return await operation(*args, **kwargs)
        except ConnectivityError as e:
            logger.error(
                f"Connectivity failure during {operation_name}: {e.message}",
                extra={"operation": operation_name, "error_code": e.code},
            )
            self.tracker.report_failure(reason=e.message)
            raise self._unavailable(operation_name) from e

    def _unavailable(self, operation_name: str) -> ServiceUnavailableError:
        if self._on_rejected is not None:
            self._on_rejected(operation_name)
        return ServiceUnavailableError(
            operation_name, retry_after_ms=self._retry_after_ms,
        )
