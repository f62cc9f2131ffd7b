"""Relational flavor end to end: real repository on SQLite behind the routes."""

import pytest
from httpx import ASGITransport, AsyncClient

from userapp.config import Settings
from userapp.infrastructure.database import (
    RelationalDatastore, create_engine_from_url,
)
from userapp.main import create_app, lifespan


@pytest.fixture
async def sql_client():
    settings = Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        database_auto_create_schema=True,
        log_format="text",
    )
    datastore = RelationalDatastore(
        create_engine_from_url(settings.database_url), auto_create_schema=True,
    )
    await datastore.prepare()
    app = create_app(settings, datastore)
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c
    await datastore.close()


async def test_register_list_and_duplicate(sql_client):
    created = await sql_client.post(
        "/api/users", json={"name": "Ada Lovelace", "email": "ada@example.com"},
    )
    duplicate = await sql_client.post(
        "/api/users", json={"name": "Ada Again", "email": "ADA@example.com"},
    )
    listed = await sql_client.get("/api/users")

    assert created.status_code == 201
    assert duplicate.status_code == 409
    assert [u["email"] for u in listed.json()] == ["ada@example.com"]


async def test_unknown_and_malformed_ids_are_404(sql_client):
    assert (await sql_client.get("/api/users/123")).status_code == 404
    assert (await sql_client.get("/api/users/abc")).status_code == 404


async def test_schema_created_once_database_appears_after_down_start(tmp_path):
    data_dir = tmp_path / "data"
    settings = Settings(
        database_url=f"sqlite+aiosqlite:///{data_dir}/users.db",
        database_auto_create_schema=True,
        log_format="text",
    )
    datastore = RelationalDatastore(
        create_engine_from_url(settings.database_url), auto_create_schema=True,
    )
    app = create_app(settings, datastore)

    async with lifespan(app):
        assert not app.state.tracker.is_up()

        data_dir.mkdir()
        assert await app.state.prober.probe_now() is True

        assert await app.state.user_service.list_users() == []
        assert app.state.tracker.is_up()
        assert app.state.preparer.prepared
