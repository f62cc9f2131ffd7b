"""Relational Datastore: async SQLAlchemy engine, user repository, connectivity probe.

Invariants:
    - Every session auto-rolls-back on a rejected write (no partial commits leak)
    - Every session and probe connection is released in a finally/async-with,
      including when the caller is cancelled mid-operation
    - Driver errors are translated here: reachability failures become
      ConnectivityError, integrity violations become DomainConflictError
      (DuplicateEmailError for a repeated email on insert)
    - Malformed ids (non-integer) are "not found"

Design Decisions:
    - Engine owned by RelationalDatastore, built once in the app factory
      (ADR: no global import side effects)
    - expire_on_commit=False: rows stay readable after commit in async context
    - pool_pre_ping stays on: stale pooled connections are replaced before use
      instead of failing a request
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import func, select, text
from sqlalchemy.exc import (
    DBAPIError, IntegrityError, InterfaceError, OperationalError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine,
)

from userapp.core.domain_types import NewUser, UserId, UserRecord
from userapp.core.errors import (
    ConnectivityError, DomainConflictError, DuplicateEmailError,
)
from userapp.db.base import Base
from userapp.models.user import User

logger = logging.getLogger(__name__)

_CONNECTIVITY_ERRORS = (
    OperationalError, InterfaceError, PoolTimeoutError, OSError,
    asyncio.TimeoutError,
)


def _describe(e: BaseException) -> str:
    orig = getattr(e, "orig", None)
    return str(orig or e) or type(e).__name__


def create_engine_from_url(
    database_url: str,
    pool_size: int = 20,
    max_overflow: int = 10,
    connect_timeout: float = 2.0,
) -> AsyncEngine:
    """Build the async engine; pool sizing only applies to server databases."""
    kwargs: dict = {"pool_pre_ping": True}
    if not database_url.startswith("sqlite"):
        kwargs.update(
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_recycle=3600,
            pool_timeout=connect_timeout,
        )
    if "+asyncpg" in database_url:
        kwargs["connect_args"] = {"timeout": connect_timeout}
    return create_async_engine(database_url, **kwargs)


class DatabaseSessionManager:
    """Hands out async sessions with rollback and error translation."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(
        self, operation: str,
    ) -> AsyncGenerator[AsyncSession, None]:
        """Provide session with auto-rollback and translated exceptions."""
        session = self._session_factory()
        try:
            yield session
        except IntegrityError as e:
            await session.rollback()
            logger.warning(f"DB integrity error during {operation}: {_describe(e)}")
            raise DomainConflictError("Integrity constraint violated") from e
        except _CONNECTIVITY_ERRORS as e:
            logger.error(f"DB unreachable during {operation}: {_describe(e)}")
            raise ConnectivityError(_describe(e), operation) from e
        except DBAPIError as e:
            if e.connection_invalidated:
                logger.error(f"DB connection invalidated during {operation}")
                raise ConnectivityError(_describe(e), operation) from e
            await session.rollback()
            logger.error(f"DB driver error during {operation}: {_describe(e)}")
            raise
        finally:
            await session.close()


def _to_record(row: User) -> UserRecord:
    return UserRecord(
        id=UserId(str(row.id)),
        name=row.name,
        email=row.email,
        created_at=row.created_at,
    )


def _parse_id(user_id: str) -> int | None:
    try:
        return int(user_id)
    except (TypeError, ValueError):
        return None


class SqlUserRepository:
    """UserRepository over the users table."""

    def __init__(self, sessions: DatabaseSessionManager):
        self._sessions = sessions

    async def add(self, user: NewUser) -> UserRecord:
        # email is the only unique column besides the primary key
        try:
            async with self._sessions.session("insert") as db:
                row = User(name=user.name, email=user.email)
                db.add(row)
                await db.commit()
                return _to_record(row)
        except DomainConflictError as e:
            raise DuplicateEmailError(user.email) from e

    async def list_all(self) -> list[UserRecord]:
        async with self._sessions.session("list") as db:
            result = await db.execute(select(User).order_by(User.id))
            return [_to_record(row) for row in result.scalars().all()]

    async def get_by_id(self, user_id: str) -> UserRecord | None:
        pk = _parse_id(user_id)
        if pk is None:
            return None
        async with self._sessions.session("lookup") as db:
            row = await db.get(User, pk)
            return _to_record(row) if row else None

    async def get_by_email(self, email: str) -> UserRecord | None:
        async with self._sessions.session("lookup") as db:
            result = await db.execute(select(User).where(User.email == email))
            row = result.scalar_one_or_none()
            return _to_record(row) if row else None

    async def delete(self, user_id: str) -> bool:
        pk = _parse_id(user_id)
        if pk is None:
            return False
        async with self._sessions.session("delete") as db:
            row = await db.get(User, pk)
            if row is None:
                return False
            await db.delete(row)
            await db.commit()
            return True

    async def count(self) -> int:
        async with self._sessions.session("count") as db:
            result = await db.execute(select(func.count()).select_from(User))
            return result.scalar_one()


class RelationalDatastore:
    """Datastore flavor backed by PostgreSQL (SQLite in tests)."""

    name = "relational"

    def __init__(self, engine: AsyncEngine, auto_create_schema: bool = False):
        self.engine = engine
        self.sessions = DatabaseSessionManager(engine)
        self.users = SqlUserRepository(self.sessions)
        self._auto_create_schema = auto_create_schema

    async def ping(self) -> None:
        """Acquire one pooled connection, run SELECT 1, release it."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (DBAPIError, PoolTimeoutError, OSError) as e:
            raise ConnectivityError(_describe(e), "ping") from e

    async def prepare(self) -> None:
        """Create tables when configured to; Alembic owns the schema otherwise."""
        if not self._auto_create_schema:
            return
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (DBAPIError, PoolTimeoutError, OSError) as e:
            raise ConnectivityError(_describe(e), "create_schema") from e
        logger.info("Relational schema ensured", extra={"backend": self.name})

    async def close(self) -> None:
        await self.engine.dispose()
