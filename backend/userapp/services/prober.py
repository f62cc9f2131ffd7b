"""Availability Prober: keeps the tracker fresh with bounded connectivity checks.

Invariants:
    - At most one probe in flight per prober, whoever triggered it
    - Concurrent probe_now() callers share the in-flight probe and its result
    - Every attempt is bounded by timeout_seconds < interval_seconds
    - Timeout, refusal and any other Exception are all "down"; the error text is
      kept for logging and last_error only
    - stop() leaves no task behind (periodic loop and in-flight probe both awaited)
    - on_success runs after every successful probe, inside the shared attempt;
      its failures are logged and never change the probe result

Design Decisions:
    - Coalescing via one shared asyncio.Task; callers await it through
      asyncio.shield so a cancelled health request cannot cancel everyone's probe
    - Fixed monotonic schedule: a tick that lands on an in-flight probe is
      skipped, not queued, so a slow datastore cannot build a backlog
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable

from userapp.core.availability import AvailabilityTracker

logger = logging.getLogger(__name__)

ProbePrimitive = Callable[[], Awaitable[None]]
SuccessHook = Callable[[], Awaitable[object]]


class AvailabilityProber:
    """Periodic and on-demand connectivity checks feeding one tracker."""

    def __init__(
        self,
        tracker: AvailabilityTracker,
        probe: ProbePrimitive,
        interval_seconds: float = 10.0,
        timeout_seconds: float = 2.0,
        on_success: SuccessHook | None = None,
    ):
        if not 0 < timeout_seconds < interval_seconds:
            raise ValueError(
                "Probe timeout must be positive and shorter than the interval "
                f"(timeout={timeout_seconds}, interval={interval_seconds})",
            )
        self.tracker = tracker
        self._probe = probe
        self._on_success = on_success
        self.interval_seconds = interval_seconds
        self.timeout_seconds = timeout_seconds
        self._inflight: asyncio.Task[bool] | None = None
        self._loop_task: asyncio.Task[None] | None = None
        self.attempts = 0
        self.skipped_ticks = 0
        self.last_error: str | None = None

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def probe_in_flight(self) -> bool:
        return self._inflight is not None

    async def probe_now(self) -> bool:
        """Fresh up/down answer; joins the in-flight probe if there is one."""
        task = self._inflight
        if task is None:
            task = asyncio.create_task(self._attempt(), name="availability-probe")
            self._inflight = task
        return await asyncio.shield(task)

    def start(self) -> None:
        """Start the periodic loop (idempotent)."""
        if self.running:
            return
        self._loop_task = asyncio.create_task(
            self._run_periodically(), name="availability-prober",
        )
        logger.info(
            f"Availability prober started (interval={self.interval_seconds}s, "
            f"timeout={self.timeout_seconds}s)",
        )

    run_periodically = start

    async def stop(self) -> None:
        """Cancel the loop and any in-flight probe, then wait for both."""
        tasks = [t for t in (self._loop_task, self._inflight) if t is not None]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._loop_task = None
        self._inflight = None
        logger.info("Availability prober stopped")

    async def _run_periodically(self) -> None:
        next_tick = time.monotonic() + self.interval_seconds
        while True:
            await asyncio.sleep(max(0.0, next_tick - time.monotonic()))
            next_tick += self.interval_seconds
            if self._inflight is not None:
                self.skipped_ticks += 1
                logger.debug("Probe tick skipped: probe already in flight")
                continue
            await self.probe_now()
            # Ticks missed while a probe ran are dropped, not replayed
            now = time.monotonic()
            while next_tick <= now:
                next_tick += self.interval_seconds
                self.skipped_ticks += 1

    async def _attempt(self) -> bool:
        self.attempts += 1
        try:
            await asyncio.wait_for(self._probe(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            return self._record_failure(
                f"probe timed out after {self.timeout_seconds}s",
            )
        except Exception as e:
            return self._record_failure(str(e) or type(e).__name__)
        else:
            self.last_error = None
            self.tracker.report_success()
            await self._run_success_hook()
            return True
        finally:
            self._inflight = None

    async def _run_success_hook(self) -> None:
        if self._on_success is None:
            return
        try:
            await self._on_success()
        except Exception:
            logger.exception("Probe success hook failed")

    def _record_failure(self, reason: str) -> bool:
        self.last_error = reason
        logger.warning(
            f"Datastore probe failed: {reason}",
            extra={
                "consecutive_failures":
                    self.tracker.snapshot().consecutive_failures + 1,
            },
        )
        self.tracker.report_failure(reason=reason)
        return False
