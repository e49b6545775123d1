"""Initialize-or-update state machine for one local working copy."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from webhook_mirror.entities.outcome import OutcomeKind, SyncOutcome
from webhook_mirror.errors import VcsError
from webhook_mirror.logging_config import RepoLogAdapter
from webhook_mirror.sync.backend import FetchResult
from webhook_mirror.sync.retry import RetryController
from webhook_mirror.sync.trigger import TriggerNotifier

if TYPE_CHECKING:
    from webhook_mirror.config import RetryPolicy
    from webhook_mirror.entities.mapping import RepoMapping
    from webhook_mirror.sync.backend import GitBackend

logger = logging.getLogger(__name__)


class SyncEngine:
    """Mirror the mapping's tracked ref into its local directory.

    A missing directory is cloned (Initialize); an existing one is fetched
    and hard reset to the remote ref (Update). Local modifications are
    discarded. Failures leave the working copy as the failing step left it.
    Blocking git calls run in worker threads.
    """

    def __init__(self, backend: GitBackend, notifier: TriggerNotifier | None = None) -> None:
        self._backend = backend
        self._notifier = notifier or TriggerNotifier()

    async def run(self, mapping: RepoMapping, policy: RetryPolicy) -> SyncOutcome:
        log = RepoLogAdapter(logger, mapping)
        if mapping.directory.exists():
            log.info("Starting update of %s (%s)", mapping.directory, mapping.ref)
            outcome = await self._update(mapping, policy, log)
        else:
            log.info("Initializing %s from %s (%s)", mapping.directory, mapping.url, mapping.ref)
            outcome = await self._initialize(mapping, log)

        if outcome.kind is OutcomeKind.FAILED:
            log.error("Sync failed: %s", outcome.reason)
        else:
            log.info("Sync finished: %s (head %s)", outcome.kind, outcome.local_hash or "unchanged")
        return outcome

    async def _initialize(self, mapping: RepoMapping, log: RepoLogAdapter) -> SyncOutcome:
        try:
            await asyncio.to_thread(
                self._backend.clone, mapping.url, mapping.directory, mapping.ref, mapping.auth
            )
            handle = await asyncio.to_thread(self._backend.open, mapping.directory)
            try:
                head = await asyncio.to_thread(self._backend.resolve_ref, handle, "HEAD")
            finally:
                self._backend.close(handle)
        except VcsError as e:
            return SyncOutcome.failed(mapping.path, f"initialize: {e}")

        log.info("Cloned %s at %s", mapping.ref, head)
        self._notifier.notify(mapping)
        return SyncOutcome(OutcomeKind.INITIALIZED, mapping.path, local_hash=head, remote_hash=head)

    async def _update(self, mapping: RepoMapping, policy: RetryPolicy, log: RepoLogAdapter) -> SyncOutcome:
        try:
            handle = await asyncio.to_thread(self._backend.open, mapping.directory)
        except VcsError as e:
            return SyncOutcome.failed(mapping.path, f"open: {e}")

        try:
            return await self._update_open(handle, mapping, policy, log)
        finally:
            self._backend.close(handle)

    async def _update_open(
        self, handle: Any, mapping: RepoMapping, policy: RetryPolicy, log: RepoLogAdapter
    ) -> SyncOutcome:
        log.info("Fetching from %s", mapping.remote)
        retry = RetryController(policy, log)
        try:
            result = await retry.run(
                lambda: self._backend.fetch(handle, mapping.remote, mapping.ref, mapping.auth)
            )
        except VcsError as e:
            return SyncOutcome.failed(mapping.path, f"fetch: {e}")

        if result is FetchResult.UP_TO_DATE:
            log.info("No new commits")
            return SyncOutcome(OutcomeKind.UP_TO_DATE, mapping.path)

        # Compare before touching the work tree
        try:
            remote_hash = await asyncio.to_thread(self._backend.resolve_ref, handle, mapping.expected_ref)
            local_hash = await asyncio.to_thread(self._backend.resolve_ref, handle, "HEAD")
        except VcsError as e:
            return SyncOutcome.failed(mapping.path, f"resolve: {e}")

        if remote_hash == local_hash:
            log.info("Already at %s", remote_hash)
            return SyncOutcome(
                OutcomeKind.UP_TO_DATE, mapping.path, local_hash=local_hash, remote_hash=remote_hash
            )

        log.info("Resetting work tree from %s to %s", local_hash, remote_hash)
        try:
            await asyncio.to_thread(self._backend.hard_reset, handle, remote_hash)
            head = await asyncio.to_thread(self._backend.resolve_ref, handle, "HEAD")
        except VcsError as e:
            return SyncOutcome.failed(
                mapping.path, f"reset: {e}", local_hash=local_hash, remote_hash=remote_hash
            )

        if head != remote_hash:
            return SyncOutcome.failed(
                mapping.path,
                f"HEAD is {head} after reset, expected {remote_hash}",
                local_hash=head,
                remote_hash=remote_hash,
            )

        self._notifier.notify(mapping)
        return SyncOutcome(OutcomeKind.UPDATED, mapping.path, local_hash=head, remote_hash=remote_hash)
