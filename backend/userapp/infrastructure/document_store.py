"""Document Datastore: MongoDB users collection through PyMongo's async client.

Invariants:
    - email carries a unique index (created by prepare()); a duplicate insert is
      DuplicateEmailError, never a connectivity signal
    - ConnectionFailure and its subclasses (ServerSelectionTimeoutError,
      AutoReconnect, NetworkTimeout) become ConnectivityError
    - Malformed ObjectIds are "not found"
    - Server selection timeout equals the probe timeout, so a dead server fails a
      request no slower than it fails a probe
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, AsyncMongoClient
from pymongo.errors import ConnectionFailure, DuplicateKeyError

from userapp.core.domain_types import NewUser, UserId, UserRecord
from userapp.core.errors import (
    ConnectivityError, DomainConflictError, DuplicateEmailError,
)

logger = logging.getLogger(__name__)


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except DuplicateKeyError as e:
        raise DomainConflictError("Duplicate key") from e
    except ConnectionFailure as e:
        logger.error(f"MongoDB unreachable during {operation}: {e}")
        raise ConnectivityError(str(e), operation) from e


def _parse_object_id(user_id: str) -> ObjectId | None:
    try:
        return ObjectId(user_id)
    except (InvalidId, TypeError):
        return None


def _to_record(doc: dict[str, Any]) -> UserRecord:
    return UserRecord(
        id=UserId(str(doc["_id"])),
        name=doc["name"],
        email=doc["email"],
        created_at=doc["created_at"],
    )


class MongoUserRepository:
    """UserRepository over one MongoDB collection."""

    def __init__(self, collection):
        self._collection = collection

    async def add(self, user: NewUser) -> UserRecord:
        doc = {
            "name": user.name,
            "email": user.email,
            "created_at": datetime.now(timezone.utc),
        }
        try:
            with _translate_errors("insert"):
                result = await self._collection.insert_one(doc)
        except DomainConflictError as e:
            raise DuplicateEmailError(user.email) from e
        return _to_record({**doc, "_id": result.inserted_id})

    async def list_all(self) -> list[UserRecord]:
        with _translate_errors("list"):
            cursor = self._collection.find({}).sort("created_at", ASCENDING)
            docs = await cursor.to_list(length=None)
        return [_to_record(doc) for doc in docs]

    async def get_by_id(self, user_id: str) -> UserRecord | None:
        oid = _parse_object_id(user_id)
        if oid is None:
            return None
        with _translate_errors("lookup"):
            doc = await self._collection.find_one({"_id": oid})
        return _to_record(doc) if doc else None

    async def get_by_email(self, email: str) -> UserRecord | None:
        with _translate_errors("lookup"):
            doc = await self._collection.find_one({"email": email})
        return _to_record(doc) if doc else None

    async def delete(self, user_id: str) -> bool:
        oid = _parse_object_id(user_id)
        if oid is None:
            return False
        with _translate_errors("delete"):
            result = await self._collection.delete_one({"_id": oid})
        return result.deleted_count == 1

    async def count(self) -> int:
        with _translate_errors("count"):
            return await self._collection.count_documents({})


class DocumentDatastore:
    """Datastore flavor backed by MongoDB."""

    name = "document"

    def __init__(self, client, database_name: str):
        self._client = client
        self._collection = client[database_name]["users"]
        self.users = MongoUserRepository(self._collection)

    async def ping(self) -> None:
        """Round-trip the ping admin command on a pooled connection."""
        with _translate_errors("ping"):
            await self._client.admin.command("ping")

    async def prepare(self) -> None:
        with _translate_errors("create_index"):
            await self._collection.create_index(
                [("email", ASCENDING)], unique=True,
            )
        logger.info("Document indexes ensured", extra={"backend": self.name})

    async def close(self) -> None:
        await self._client.close()


def create_mongo_client(url: str, timeout_seconds: float) -> AsyncMongoClient:
    timeout_ms = int(timeout_seconds * 1000)
    return AsyncMongoClient(
        url,
        serverSelectionTimeoutMS=timeout_ms,
        connectTimeoutMS=timeout_ms,
        tz_aware=True,
    )
