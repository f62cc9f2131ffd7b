"""Domain Types: value objects passed between core, services and the datastores.

Invariants:
    - UserId is always a string at the domain boundary (SQL integer keys and
      Mongo ObjectIds are both rendered as str)
    - UserRecord is immutable once read from a datastore
    - AvailabilityTransition values are the only notification kinds the tracker emits

Design Decisions:
    - Frozen dataclasses over ORM objects: the document flavor has no ORM, and
      routes must not care which flavor produced a record
    - str Enums: serialize to JSON and Prometheus labels without custom encoders
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import NewType


UserId = NewType("UserId", str)


class DatastoreBackend(str, Enum):
    """Datastore flavors the service can be deployed against."""
    RELATIONAL = "relational"
    DOCUMENT = "document"


class AvailabilityTransition(str, Enum):
    """One-shot notifications emitted by the tracker on a state change."""
    LOST = "lost"
    RESTORED = "restored"


@dataclass(frozen=True)
class NewUser:
    """Validated registration request, not yet persisted."""
    name: str
    email: str


@dataclass(frozen=True)
class UserRecord:
    """A persisted user as returned by any datastore flavor."""
    id: UserId
    name: str
    email: str
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class AvailabilityEvent:
    """Delivered to tracker observers, best-effort, once per transition."""
    transition: AvailabilityTransition
    at: datetime
    consecutive_failures: int
    reason: str | None = None
