"""Structured Logging: JSON formatter, setup, and availability transition logging.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Extra fields (event, operation, error_code, consecutive_failures) surfaced when present
    - JSON format in production, human-readable in development
    - "lost" transitions log at ERROR, "restored" at INFO, once each

Design Decisions:
    - JSONFormatter on stdlib logging: no extra logging dependency
    - setup_logging runs in the lifespan and owns exactly one root handler
"""

import logging
import json
from datetime import datetime, timezone

from userapp.core.domain_types import AvailabilityEvent, AvailabilityTransition

_HANDLER_MARKER = "_userapp_handler"

_EXTRA_KEYS = (
    "event", "operation", "error_code", "path", "backend",
    "consecutive_failures", "user_id", "reason",
)


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_KEYS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False)


def setup_logging(level: str = "INFO", fmt: str = "json"):
    """Configure logging for the application.

    Safe to call more than once: the handler installed by a previous call is
    replaced, so each record is emitted exactly once.
    """
    for existing in list(logging.root.handlers):
        if getattr(existing, _HANDLER_MARKER, False):
            logging.root.removeHandler(existing)
    handler = logging.StreamHandler()
    setattr(handler, _HANDLER_MARKER, True)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s - %(message)s",
        ))
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))


class TransitionLogger:
    """Tracker observer that writes one log line per up/down transition."""

    def __init__(self, backend: str, logger: logging.Logger | None = None):
        self._backend = backend
        self._logger = logger or logging.getLogger("userapp.availability")

    def __call__(self, event: AvailabilityEvent) -> None:
        extra = {
            "event": event.transition.value,
            "backend": self._backend,
            "consecutive_failures": event.consecutive_failures,
            "reason": event.reason,
        }
        if event.transition is AvailabilityTransition.LOST:
            self._logger.error(
                f"Datastore connection lost ({self._backend})", extra=extra,
            )
        else:
            self._logger.info(
                f"Datastore connection restored ({self._backend})", extra=extra,
            )
