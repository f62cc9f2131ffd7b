"""Availability Tracker: last-known up/down state of the datastore connection.

Invariants:
    - is_up() and snapshot() never block and never perform I/O
    - Only report_success() / report_failure() change state, serialized by one lock
    - A "lost" event fires once per UP -> DOWN transition, a "restored" event once
      per DOWN -> UP transition; repeated identical reports only touch counters
    - last_checked_at moves on every report; last_transition_at only on a flip
    - State is ephemeral: lives and dies with the process

Design Decisions:
    - AvailabilityState is a frozen snapshot swapped under the write lock; readers
      take the current reference without locking (single attribute read)
    - threading.Lock, not asyncio.Lock: reports may come from the event loop or
      from worker threads running sync handlers
    - Observers run synchronously while the write lock is held, so notifications
      arrive in transition order; they must not call back into the tracker
"""

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable

from userapp.core.domain_types import AvailabilityEvent, AvailabilityTransition

logger = logging.getLogger(__name__)

AvailabilityObserver = Callable[[AvailabilityEvent], None]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AvailabilityState:
    """Point-in-time view of datastore reachability."""
    is_up: bool
    last_checked_at: datetime | None = None
    last_transition_at: datetime | None = None
    consecutive_failures: int = 0

    def to_dict(self) -> dict:
        return {
            "is_up": self.is_up,
            "last_checked_at": (
                self.last_checked_at.isoformat() if self.last_checked_at else None
            ),
            "last_transition_at": (
                self.last_transition_at.isoformat()
                if self.last_transition_at else None
            ),
            "consecutive_failures": self.consecutive_failures,
        }


class AvailabilityTracker:
    """Two-state (UP/DOWN) machine shared by every request path in the process."""

    def __init__(
        self,
        initially_up: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._state = AvailabilityState(is_up=initially_up)
        self._clock = clock
        self._lock = threading.Lock()
        self._observers: list[AvailabilityObserver] = []

    def is_up(self) -> bool:
        return self._state.is_up

    def snapshot(self) -> AvailabilityState:
        return self._state

    def subscribe(self, observer: AvailabilityObserver) -> None:
        """Register a best-effort transition observer."""
        with self._lock:
            self._observers.append(observer)

    def report_success(self) -> None:
        with self._lock:
            now = self._clock()
            previous = self._state
            self._state = replace(
                previous,
                is_up=True,
                last_checked_at=now,
                last_transition_at=(
                    previous.last_transition_at if previous.is_up else now
                ),
                consecutive_failures=0,
            )
            if not previous.is_up:
                self._notify(AvailabilityEvent(
                    transition=AvailabilityTransition.RESTORED,
                    at=now,
                    consecutive_failures=previous.consecutive_failures,
                ))

    def report_failure(self, reason: str | None = None) -> None:
        with self._lock:
            now = self._clock()
            previous = self._state
            self._state = replace(
                previous,
                is_up=False,
                last_checked_at=now,
                last_transition_at=(
                    now if previous.is_up else previous.last_transition_at
                ),
                consecutive_failures=previous.consecutive_failures + 1,
            )
            if previous.is_up:
                self._notify(AvailabilityEvent(
                    transition=AvailabilityTransition.LOST,
                    at=now,
                    consecutive_failures=self._state.consecutive_failures,
                    reason=reason,
                ))

    def _notify(self, event: AvailabilityEvent) -> None:
        # Best-effort: a failing observer must not break the reporter
        for observer in self._observers:
            try:
                observer(event)
            except Exception:
                logger.exception(
                    "Availability observer failed",
                    extra={"event": event.transition.value},
                )
