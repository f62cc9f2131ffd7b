"""Boundary Protocols: contracts between core and shell.

Invariants:
    - Core NEVER imports from shell; dependency arrows point inward only
    - Implementations raise ConnectivityError for reachability failures and
      DomainConflictError (or a subclass) for rejected writes, nothing else
    - Malformed ids are "not found", never an error

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Async in Protocol: boundary methods are async because implementations do IO,
      but core code that USES these protocols only passes awaitables through
"""

from typing import Protocol

from userapp.core.domain_types import NewUser, UserRecord


class UserRepository(Protocol):
    """Contract for user persistence, implemented per datastore flavor."""
    async def add(self, user: NewUser) -> UserRecord: ...
    async def list_all(self) -> list[UserRecord]: ...
    async def get_by_id(self, user_id: str) -> UserRecord | None: ...
    async def get_by_email(self, email: str) -> UserRecord | None: ...
    async def delete(self, user_id: str) -> bool: ...
    async def count(self) -> int: ...


class Datastore(Protocol):
    """One deployable datastore flavor: repository plus connectivity primitive.

    ping() is the probe primitive: it acquires and releases one connection
    (or round-trips a trivial command) and raises ConnectivityError on any
    failure. Callers bound it with their own timeout.
    """
    name: str
    users: UserRepository

    async def ping(self) -> None: ...
    async def prepare(self) -> None: ...
    async def close(self) -> None: ...
