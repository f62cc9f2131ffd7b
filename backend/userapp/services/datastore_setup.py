"""Datastore Preparation: schema/index setup that survives a down start.

Invariants:
    - prepare() succeeds at most once per process; later calls are a flag check
    - Runs through the DatastoreGuard, so a datastore that drops mid-setup is
      marked down and setup is retried after the next successful probe
    - Concurrent callers wait on one lock; setup never runs twice in parallel

Design Decisions:
    - Driven by the prober's success hook rather than only by startup, so a
      process booted against a dead datastore still creates its schema
"""

import asyncio
import logging

from userapp.core.errors import ServiceUnavailableError
from userapp.core.guarded import DatastoreGuard
from userapp.core.repository_protocols import Datastore

logger = logging.getLogger(__name__)


class DatastorePreparer:
    def __init__(self, datastore: Datastore, guard: DatastoreGuard):
        self._datastore = datastore
        self._guard = guard
        self._lock = asyncio.Lock()
        self.prepared = False

    async def ensure_prepared(self) -> bool:
        """Run datastore.prepare() unless it already succeeded."""
        if self.prepared:
            return True
        async with self._lock:
            if self.prepared:
                return True
            try:
                await self._guard.run("prepare", self._datastore.prepare)
            except ServiceUnavailableError:
                logger.warning(
                    "Datastore preparation deferred: datastore unavailable",
                    extra={"backend": self._datastore.name},
                )
                return False
            self.prepared = True
            logger.info(
                "Datastore prepared", extra={"backend": self._datastore.name},
            )
            return True
