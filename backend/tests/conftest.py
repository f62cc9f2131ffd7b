"""Root conftest: shared test configuration and app fixtures."""

import logging
import os

# Importing userapp.main builds a module-level app from the environment;
# keep it on SQLite so no test ever reaches for a real server.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DATASTORE_BACKEND", "relational")
os.environ.setdefault("LOG_FORMAT", "text")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from userapp.config import Settings  # noqa: E402
from userapp.main import create_app  # noqa: E402
from tests.fakes import FakeDatastore  # noqa: E402


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        probe_interval_seconds=10.0,
        probe_timeout_seconds=2.0,
        log_format="text",
    )


@pytest.fixture
def datastore():
    return FakeDatastore()


@pytest.fixture
def app(settings, datastore):
    return create_app(settings, datastore)


@pytest.fixture
def tracker(app):
    return app.state.tracker


@pytest.fixture
async def client(app):
    """Test client over ASGI; the lifespan (periodic prober) is not started."""
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """Lifespan runs install a root handler; drop it after each test."""
    handlers = list(logging.root.handlers)
    level = logging.root.level
    yield
    logging.root.handlers[:] = handlers
    logging.root.setLevel(level)
