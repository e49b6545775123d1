"""Bounded retry around the remote fetch step."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from webhook_mirror.errors import VcsError
from webhook_mirror.sync.backend import FetchResult

if TYPE_CHECKING:
    from collections.abc import Callable

    from webhook_mirror.config import RetryPolicy

logger = logging.getLogger(__name__)


class RetryController:
    """Run a blocking fetch up to ``policy.attempts`` times.

    "Already up to date" counts as success on any attempt. When every attempt
    fails the last ``VcsError`` is re-raised to the caller.
    """

    def __init__(self, policy: RetryPolicy, log: logging.Logger | logging.LoggerAdapter | None = None) -> None:
        self._policy = policy
        self._log = log or logger

    async def run(self, fetch: Callable[[], FetchResult]) -> FetchResult:
        attempts = self._policy.attempts
        attempt = 1
        while True:
            try:
                return await asyncio.to_thread(fetch)
            except VcsError as e:
                self._log.warning("Fetch attempt %d/%d failed: %s", attempt, attempts, e)
                if attempt >= attempts:
                    raise

            attempt += 1
            await asyncio.sleep(self._policy.delay)
