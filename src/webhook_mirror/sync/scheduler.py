"""Serialize sync runs per working copy."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from webhook_mirror.config import RetryPolicy
    from webhook_mirror.entities.mapping import RepoMapping
    from webhook_mirror.entities.outcome import SyncOutcome
    from webhook_mirror.sync.engine import SyncEngine

logger = logging.getLogger(__name__)


class SyncScheduler:
    """Fire-and-forget runner with one run in flight per working copy.

    A request arriving while its working copy is busy becomes the single
    pending run for that copy; further requests replace it, so the pending
    run always uses the newest mapping snapshot. Runs for different copies
    proceed concurrently.
    """

    def __init__(self, engine: SyncEngine) -> None:
        self._engine = engine
        self._running: dict[str, asyncio.Task[None]] = {}
        self._pending: dict[str, tuple[RepoMapping, RetryPolicy]] = {}
        self.last_outcomes: dict[str, SyncOutcome] = {}

    def submit(self, mapping: RepoMapping, policy: RetryPolicy) -> asyncio.Task[None]:
        """Schedule a run and return the task that will perform it."""
        key = mapping.key
        task = self._running.get(key)
        if task is not None:
            if key in self._pending:
                logger.info("Coalescing sync request for %s into the pending run", mapping.name)
            else:
                logger.info("Sync of %s in progress, queueing one follow-up run", mapping.name)
            self._pending[key] = (mapping, policy)
            return task

        task = asyncio.create_task(self._drain(key, mapping, policy), name=f"sync:{key}")
        self._running[key] = task
        return task

    def busy(self, mapping: RepoMapping) -> bool:
        return mapping.key in self._running

    async def _drain(self, key: str, mapping: RepoMapping, policy: RetryPolicy) -> None:
        try:
            while True:
                try:
                    self.last_outcomes[mapping.path] = await self._engine.run(mapping, policy)
                except Exception:
                    logger.exception("Unexpected error while syncing %s", mapping.name)

                queued = self._pending.pop(key, None)
                if queued is None:
                    break
                mapping, policy = queued
        finally:
            self._running.pop(key, None)
            self._pending.pop(key, None)

    async def wait_idle(self) -> None:
        """Wait until no run is in flight or pending."""
        while self._running:
            await asyncio.gather(*self._running.values(), return_exceptions=True)
