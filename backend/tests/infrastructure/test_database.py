"""Relational Datastore: repository behaviour on SQLite and error translation.

Invariants:
    - Every test gets a fresh in-memory SQLite database with the schema created
    - An unreachable database (unopenable file) stands in for a dead server
"""

import pytest
from sqlalchemy import inspect

from userapp.core.domain_types import NewUser
from userapp.core.errors import (
    ConnectivityError, DomainConflictError, DuplicateEmailError,
)
from userapp.infrastructure.database import (
    RelationalDatastore, create_engine_from_url,
)


@pytest.fixture
async def store():
    engine = create_engine_from_url("sqlite+aiosqlite:///:memory:")
    datastore = RelationalDatastore(engine, auto_create_schema=True)
    await datastore.prepare()
    yield datastore
    await datastore.close()


@pytest.fixture
async def dead_store(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path}/missing-dir/users.db"
    datastore = RelationalDatastore(create_engine_from_url(url))
    yield datastore
    await datastore.close()


async def test_ping_succeeds_on_reachable_database(store):
    await store.ping()


async def test_add_and_read_back(store):
    record = await store.users.add(NewUser(name="Ada", email="ada@example.com"))

    assert record.id == "1"
    assert (await store.users.get_by_id(record.id)).email == "ada@example.com"
    assert (await store.users.get_by_email("ada@example.com")).id == record.id
    assert await store.users.count() == 1


async def test_list_orders_by_id(store):
    await store.users.add(NewUser(name="Ada", email="ada@example.com"))
    await store.users.add(NewUser(name="Grace", email="grace@example.com"))

    users = await store.users.list_all()

    assert [u.name for u in users] == ["Ada", "Grace"]


async def test_duplicate_email_insert_is_duplicate_email_conflict(store):
    await store.users.add(NewUser(name="Ada", email="ada@example.com"))

    with pytest.raises(DomainConflictError) as exc_info:
        await store.users.add(NewUser(name="Copy", email="ada@example.com"))

    assert isinstance(exc_info.value, DuplicateEmailError)
    assert exc_info.value.code == "DUPLICATE_EMAIL"

    assert await store.users.count() == 1


async def test_delete(store):
    record = await store.users.add(NewUser(name="Ada", email="ada@example.com"))

    assert await store.users.delete(record.id) is True
    assert await store.users.delete(record.id) is False
    assert await store.users.get_by_id(record.id) is None


async def test_malformed_id_is_not_found(store):
    assert await store.users.get_by_id("not-a-number") is None
    assert await store.users.delete("not-a-number") is False


async def test_prepare_without_auto_create_leaves_schema_alone():
    engine = create_engine_from_url("sqlite+aiosqlite:///:memory:")
    datastore = RelationalDatastore(engine)
    await datastore.prepare()
    async with engine.connect() as conn:
        tables = await conn.run_sync(
            lambda sync_conn: inspect(sync_conn).get_table_names(),
        )
    assert tables == []
    await datastore.close()


async def test_unreachable_database_ping_is_connectivity_error(dead_store):
    with pytest.raises(ConnectivityError) as exc_info:
        await dead_store.ping()
    assert exc_info.value.operation == "ping"


async def test_unreachable_database_query_is_connectivity_error(dead_store):
    with pytest.raises(ConnectivityError) as exc_info:
        await dead_store.users.count()
    assert exc_info.value.operation == "count"
