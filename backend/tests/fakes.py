"""In-memory datastore doubles for service and route tests.

Invariants:
    - FakeUserRepository honours the UserRepository contract, including
      DuplicateEmailError on a repeated email and "not found" for unknown ids
    - Setting `failure` makes every repository call raise it (after recording the call)
    - FakeDatastore.ping can be delayed, failed, or gated on an asyncio.Event,
      and records how many times it actually ran
"""

import asyncio
from datetime import datetime, timezone

from userapp.core.domain_types import NewUser, UserId, UserRecord
from userapp.core.errors import DuplicateEmailError


class FakeUserRepository:
    def __init__(self):
        self.records: dict[str, UserRecord] = {}
        self.calls: list[str] = []
        self.failure: Exception | None = None
        self._next_id = 1

    def _enter(self, operation: str):
        self.calls.append(operation)
        if self.failure is not None:
            raise self.failure

    async def add(self, user: NewUser) -> UserRecord:
        self._enter("add")
        if any(r.email == user.email for r in self.records.values()):
            raise DuplicateEmailError(user.email)
        record = UserRecord(
            id=UserId(str(self._next_id)),
            name=user.name,
            email=user.email,
            created_at=datetime.now(timezone.utc),
        )
        self._next_id += 1
        self.records[record.id] = record
        return record

    async def list_all(self) -> list[UserRecord]:
        self._enter("list_all")
        return list(self.records.values())

    async def get_by_id(self, user_id: str) -> UserRecord | None:
        self._enter("get_by_id")
        return self.records.get(user_id)

    async def get_by_email(self, email: str) -> UserRecord | None:
        self._enter("get_by_email")
        return next(
            (r for r in self.records.values() if r.email == email), None,
        )

    async def delete(self, user_id: str) -> bool:
        self._enter("delete")
        return self.records.pop(user_id, None) is not None

    async def count(self) -> int:
        self._enter("count")
        return len(self.records)


class FakeDatastore:
    name = "fake"

    def __init__(self):
        self.users = FakeUserRepository()
        self.ping_calls = 0
        self.ping_delay = 0.0
        self.ping_error: Exception | None = None
        self.ping_gate: asyncio.Event | None = None
        self.connections_open = 0
        self.prepared = False
        self.closed = False

    async def ping(self) -> None:
        self.ping_calls += 1
        self.connections_open += 1
        try:
            if self.ping_gate is not None:
                await self.ping_gate.wait()
            if self.ping_delay:
                await asyncio.sleep(self.ping_delay)
            if self.ping_error is not None:
                raise self.ping_error
        finally:
            self.connections_open -= 1

    async def prepare(self) -> None:
        self.prepared = True

    async def close(self) -> None:
        self.closed = True
