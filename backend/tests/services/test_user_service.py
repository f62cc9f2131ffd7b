"""User Service: guarded CRUD, domain errors vs connectivity errors, counters.

Tests cover:
    - Registration happy path and duplicate email (tracker stays up)
    - Fail-fast while down: repository never touched
    - Connectivity failure mid-delete flips the tracker once, then fails fast
    - Recovery after a successful probe lets registration through again
"""

import pytest

from userapp.core.availability import AvailabilityTracker
from userapp.core.domain_types import AvailabilityTransition, NewUser
from userapp.core.errors import (
    ConnectivityError, DuplicateEmailError, ResourceNotFoundError,
    ServiceUnavailableError,
)
from userapp.core.guarded import DatastoreGuard
from userapp.infrastructure.metrics import ServiceMetrics
from userapp.services.prober import AvailabilityProber
from userapp.services.user_service import UserService
from tests.fakes import FakeDatastore

ADA = NewUser(name="Ada Lovelace", email="ada@example.com")


@pytest.fixture
def datastore():
    return FakeDatastore()


@pytest.fixture
def tracker():
    return AvailabilityTracker()


@pytest.fixture
def metrics():
    return ServiceMetrics()


@pytest.fixture
def service(datastore, tracker, metrics):
    return UserService(datastore.users, DatastoreGuard(tracker), metrics)


def _registrations(metrics):
    return metrics.registry.get_sample_value("user_registrations_total")


async def test_register_persists_and_counts(service, datastore, metrics):
    record = await service.register(ADA)

    assert record.email == "ada@example.com"
    assert record.id in datastore.users.records
    assert _registrations(metrics) == 1.0


async def test_duplicate_email_is_domain_error_not_outage(
    service, tracker, metrics,
):
    await service.register(ADA)

    with pytest.raises(DuplicateEmailError):
        await service.register(NewUser(name="Other", email=ADA.email))

    assert tracker.is_up()
    assert _registrations(metrics) == 1.0


async def test_register_while_down_never_touches_datastore(
    service, datastore, tracker,
):
    tracker.report_failure()

    with pytest.raises(ServiceUnavailableError):
        await service.register(ADA)

    assert datastore.users.calls == []


async def test_all_operations_fail_fast_while_down(service, datastore, tracker):
    tracker.report_failure()
    for call in (
        service.list_users(),
        service.get_user("1"),
        service.delete_user("1"),
        service.count_users(),
    ):
        with pytest.raises(ServiceUnavailableError):
            await call
    assert datastore.users.calls == []


async def test_delete_connectivity_failure_flips_once_then_fails_fast(
    service, datastore, tracker,
):
    record = await service.register(ADA)
    events = []
    tracker.subscribe(events.append)
    datastore.users.failure = ConnectivityError("connection reset", "delete")

    with pytest.raises(ServiceUnavailableError):
        await service.delete_user(record.id)
    calls_after_failure = len(datastore.users.calls)

    with pytest.raises(ServiceUnavailableError):
        await service.delete_user(record.id)

    assert not tracker.is_up()
    assert [e.transition for e in events] == [AvailabilityTransition.LOST]
    assert len(datastore.users.calls) == calls_after_failure


async def test_registration_proceeds_after_probe_recovers(
    service, datastore, tracker,
):
    tracker.report_failure()
    prober = AvailabilityProber(tracker, datastore.ping)

    assert await prober.probe_now() is True
    record = await service.register(ADA)

    assert tracker.is_up()
    assert record.name == "Ada Lovelace"


async def test_get_user_missing_is_not_found(service, tracker):
    with pytest.raises(ResourceNotFoundError):
        await service.get_user("42")
    assert tracker.is_up()


async def test_delete_user_missing_is_not_found(service, metrics):
    with pytest.raises(ResourceNotFoundError):
        await service.delete_user("42")
    assert metrics.registry.get_sample_value("user_deletions_total") == 0.0


async def test_list_and_count(service):
    await service.register(ADA)
    await service.register(NewUser(name="Grace Hopper", email="grace@example.com"))

    users = await service.list_users()

    assert [u.name for u in users] == ["Ada Lovelace", "Grace Hopper"]
    assert await service.count_users() == 2
