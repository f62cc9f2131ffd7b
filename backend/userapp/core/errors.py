"""Error Hierarchy: typed, categorized exceptions for every user-service failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) never say anything about datastore reachability
    - ConnectivityError is internal: the guard and prober absorb it, clients
      only ever see ServiceUnavailableError
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with UserAppError base: FastAPI global handler catches all
      (ADR: uniform error shape)
    - ErrorCategory doubles as the error-kind taxonomy (SERVICE_UNAVAILABLE,
      CONNECTIVITY, CONFLICT) used by the guard to classify failures
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    SERVICE_UNAVAILABLE = "service_unavailable"
    CONNECTIVITY = "connectivity"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    operation: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class UserAppError(Exception):
    """Base exception for all user-service errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "operation": self.context.operation,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class DomainConflictError(UserAppError):
    """A business rule rejected the write (unique constraint and friends)."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )


class DuplicateEmailError(DomainConflictError):
    """Registration attempted with an email that already exists."""
    def __init__(self, email: str, context: ErrorContext | None = None):
        super().__init__(
            f"User with email {email} already exists", context,
        )
        self.code = "DUPLICATE_EMAIL"
        self.email = email


class ResourceNotFoundError(UserAppError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} not found with ID: {resource_id}",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class ConnectivityError(UserAppError):
    """The datastore could not be reached (refused, timed out, dropped)."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.operation = operation
        super().__init__(
            f"Datastore {operation} failed: {message}",
            "CONNECTIVITY_FAILURE", ErrorCategory.CONNECTIVITY,
            ErrorSeverity.CRITICAL, ctx, 503,
        )
        self.operation = operation


class ServiceUnavailableError(UserAppError):
    """Datastore believed down; the operation was rejected or abandoned."""
    def __init__(
        self,
        operation: str,
        retry_after_ms: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.operation = operation
        ctx.retry_after_ms = retry_after_ms
        ctx.user_message = "Database is unavailable, try again later"
        super().__init__(
            f"Datastore unavailable during {operation}",
            "SERVICE_UNAVAILABLE", ErrorCategory.SERVICE_UNAVAILABLE,
            ErrorSeverity.WARNING, ctx, 503,
        )
        self.operation = operation
