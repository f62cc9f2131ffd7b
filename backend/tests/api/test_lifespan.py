"""Lifespan: startup probe, schema preparation, prober start/stop, datastore close."""

import logging

from userapp.core.errors import ConnectivityError
from userapp.main import lifespan


async def test_startup_prepares_and_starts_prober(app, datastore):
    prober = app.state.prober

    async with lifespan(app):
        assert datastore.prepared
        assert app.state.preparer.prepared
        assert prober.running
        assert datastore.ping_calls == 1

    assert not prober.running
    assert datastore.closed


async def test_startup_with_datastore_down_serves_degraded(app, datastore):
    datastore.ping_error = ConnectivityError("connection refused", "ping")

    async with lifespan(app):
        assert not app.state.tracker.is_up()
        assert not datastore.prepared
        assert app.state.prober.running

    assert datastore.closed


async def test_datastore_recovering_after_down_start_gets_prepared(app, datastore):
    datastore.ping_error = ConnectivityError("connection refused", "ping")

    async with lifespan(app):
        assert not datastore.prepared

        datastore.ping_error = None
        assert await app.state.prober.probe_now() is True

        assert app.state.tracker.is_up()
        assert datastore.prepared
        assert app.state.preparer.prepared


async def test_repeated_lifespans_keep_one_log_handler(app):
    before = len(logging.root.handlers)
    async with lifespan(app):
        pass
    async with lifespan(app):
        pass
    installed = [
        h for h in logging.root.handlers if getattr(h, "_userapp_handler", False)
    ]
    assert len(installed) == 1
    assert len(logging.root.handlers) <= before + 1
