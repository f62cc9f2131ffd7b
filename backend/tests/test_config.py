"""Settings: probe timing validation and database URL normalization."""

import pytest
from pydantic import ValidationError

from userapp.config import Settings
from userapp.core.domain_types import DatastoreBackend


def test_defaults_are_optimistic_relational():
    settings = Settings(database_url="sqlite+aiosqlite:///:memory:")
    assert settings.availability_optimistic_start is True
    assert settings.datastore_backend is DatastoreBackend.RELATIONAL
    assert settings.probe_timeout_seconds < settings.probe_interval_seconds


def test_timeout_not_shorter_than_interval_rejected():
    with pytest.raises(ValidationError):
        Settings(probe_interval_seconds=2, probe_timeout_seconds=2)


def test_postgres_url_gets_async_driver():
    settings = Settings(database_url="postgresql://u:p@db:5432/userapp")
    assert settings.database_url == "postgresql+asyncpg://u:p@db:5432/userapp"


def test_document_backend_from_string():
    settings = Settings(datastore_backend="document")
    assert settings.datastore_backend is DatastoreBackend.DOCUMENT
