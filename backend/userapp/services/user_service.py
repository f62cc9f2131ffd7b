"""User Service: registration, listing, lookup, deletion and counting of users.

Invariants:
    - Every repository call runs inside DatastoreGuard.run (fail fast when down)
    - Duplicate email is a DuplicateEmailError (409), checked before insert and
      enforced again by the datastore's unique constraint
    - Missing users surface as ResourceNotFoundError (404)
    - Counters only move on success
"""

import logging

from userapp.core.domain_types import NewUser, UserRecord
from userapp.core.errors import DuplicateEmailError, ResourceNotFoundError
from userapp.core.guarded import DatastoreGuard
from userapp.core.repository_protocols import UserRepository
from userapp.infrastructure.metrics import ServiceMetrics

logger = logging.getLogger(__name__)


class UserService:
    """User operations over any datastore flavor."""

    def __init__(
        self,
        repository: UserRepository,
        guard: DatastoreGuard,
        metrics: ServiceMetrics | None = None,
    ):
        self._repository = repository
        self._guard = guard
        self._metrics = metrics

    async def register(self, user: NewUser) -> UserRecord:
        logger.info(f"Attempting to register user with email: {user.email}")
        record = await self._guard.run("register", self._register, user)
        if self._metrics is not None:
            self._metrics.user_registrations.inc()
        logger.info(
            f"Registered user {record.id} ({record.email})",
            extra={"user_id": record.id},
        )
        return record

    async def _register(self, user: NewUser) -> UserRecord:
        if await self._repository.get_by_email(user.email) is not None:
            logger.warning(f"User with email {user.email} already exists")
            raise DuplicateEmailError(user.email)
        return await self._repository.add(user)

    async def list_users(self) -> list[UserRecord]:
        users = await self._guard.run("list", self._repository.list_all)
        logger.debug(f"Found {len(users)} users")
        return users

    async def get_user(self, user_id: str) -> UserRecord:
        user = await self._guard.run(
            "lookup", self._repository.get_by_id, user_id,
        )
        if user is None:
            raise ResourceNotFoundError("User", user_id)
        return user

    async def delete_user(self, user_id: str) -> None:
        logger.info(f"Attempting to delete user with ID: {user_id}")
        deleted = await self._guard.run(
            "delete", self._repository.delete, user_id,
        )
        if not deleted:
            logger.warning(f"User with ID {user_id} not found for deletion")
            raise ResourceNotFoundError("User", user_id)
        if self._metrics is not None:
            self._metrics.user_deletions.inc()
        logger.info(f"Deleted user {user_id}", extra={"user_id": user_id})

    async def count_users(self) -> int:
        return await self._guard.run("count", self._repository.count)
