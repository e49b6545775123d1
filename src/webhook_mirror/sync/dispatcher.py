"""Turn inbound webhook requests into scheduled sync runs."""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING

from webhook_mirror.entities.events import UnhandledEvent, decode_event
from webhook_mirror.errors import PayloadError
from webhook_mirror.logging_config import RepoLogAdapter
from webhook_mirror.sync.signature import verify_signature

if TYPE_CHECKING:
    from collections.abc import Mapping

    from webhook_mirror.sync.live import LiveConfigHolder
    from webhook_mirror.sync.scheduler import SyncScheduler

logger = logging.getLogger(__name__)


class DispatchResult(StrEnum):
    """What happened to one inbound request."""

    ACCEPTED = "accepted"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    BAD_REQUEST = "bad_request"
    UNHANDLED = "unhandled"
    IGNORED = "ignored"

    @property
    def status(self) -> int:
        """HTTP status acknowledging the request."""
        return _STATUS.get(self, 200)


_STATUS = {
    DispatchResult.NOT_FOUND: 404,
    DispatchResult.FORBIDDEN: 403,
    DispatchResult.BAD_REQUEST: 400,
}


class EventDispatcher:
    """Resolve, validate and match a notification, then schedule its sync.

    The sync itself runs in the background; ``dispatch`` returns as soon as
    the run is scheduled. Must be called from the event loop thread.
    """

    def __init__(self, live: LiveConfigHolder, scheduler: SyncScheduler) -> None:
        self._live = live
        self._scheduler = scheduler

    def dispatch(self, path: str, headers: Mapping[str, str], body: bytes) -> DispatchResult:
        snapshot = self._live.current

        mapping, found = snapshot.routing.resolve(path)
        if not found or mapping is None:
            logger.warning("Repository not found for path: %s", path)
            return DispatchResult.NOT_FOUND

        log = RepoLogAdapter(logger, mapping)

        if not verify_signature(mapping.secret, body, headers):
            log.warning("Webhook signature verification failed")
            return DispatchResult.FORBIDDEN

        try:
            event = decode_event(headers, body)
        except PayloadError as e:
            log.warning("Rejected webhook payload: %s", e)
            return DispatchResult.BAD_REQUEST

        if isinstance(event, UnhandledEvent):
            log.info("Ignoring unhandled %r event", event.name)
            return DispatchResult.UNHANDLED

        if not event.matches_url(mapping.url):
            log.info(
                "Ignoring push for %s, mapping tracks %s",
                ", ".join(event.repository_urls) or "unknown repository",
                mapping.url,
            )
            return DispatchResult.IGNORED

        if event.ref != mapping.notification_ref:
            log.info("Ignoring push to %s, mapping tracks %s", event.ref, mapping.notification_ref)
            return DispatchResult.IGNORED

        log.info("Push to %s (commit: %s), scheduling sync", event.ref, event.after or "unknown")
        self._scheduler.submit(mapping, snapshot.settings.retry)
        return DispatchResult.ACCEPTED
