"""Hot reload of the live configuration when its file changes."""

from __future__ import annotations

import asyncio
import logging
import os
import time
from typing import TYPE_CHECKING

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from webhook_mirror.errors import ConfigError
from webhook_mirror.logging_config import configure_logging
from webhook_mirror.sync.live import LiveConfiguration

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from webhook_mirror.sync.live import LiveConfigHolder
    from webhook_mirror.sync.scheduler import SyncScheduler

logger = logging.getLogger(__name__)

DEBOUNCE_SECONDS = 0.25

_WATCHED_EVENTS = {"modified", "created", "moved"}


def initialize_missing(config: LiveConfiguration, scheduler: SyncScheduler) -> int:
    """Schedule a clone for every mapping whose directory does not exist yet."""
    count = 0
    for mapping in config.routing.active():
        if not mapping.directory.exists():
            logger.info("Initializing missing working copy %s for %s", mapping.directory, mapping.name)
            scheduler.submit(mapping, config.settings.retry)
            count += 1
    return count


class HotReloadCoordinator:
    """Rebuild and publish the live configuration on change signals.

    Signals within ``debounce`` seconds of the last accepted one are dropped,
    since one edit usually produces several file events. A configuration that
    fails to load leaves the current one in place.
    """

    def __init__(
        self,
        path: Path,
        live: LiveConfigHolder,
        scheduler: SyncScheduler,
        debounce: float = DEBOUNCE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        apply_logging: bool = True,
    ) -> None:
        self._path = path
        self._live = live
        self._scheduler = scheduler
        self._debounce = debounce
        self._clock = clock
        self._apply_logging = apply_logging
        self._last_accepted: float | None = None
        self._tasks: set[asyncio.Task[bool]] = set()
        self._reload_lock = asyncio.Lock()
        self.reload_count = 0

    def signal(self) -> bool:
        """Accept or debounce a change signal; accepted ones reload in the background."""
        now = self._clock()
        if self._last_accepted is not None and now - self._last_accepted < self._debounce:
            logger.debug("Config change signal debounced")
            return False
        self._last_accepted = now

        task = asyncio.create_task(self.reload(), name="config-reload")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def reload(self) -> bool:
        """Load the file from scratch and publish it; returns False if rejected.

        Reloads run one at a time so snapshots are published in the order the
        file was read.
        """
        async with self._reload_lock:
            return await self._reload()

    async def _reload(self) -> bool:
        logger.info("Config file changed: %s", self._path)
        try:
            new = await asyncio.to_thread(LiveConfiguration.load, self._path)
            if self._apply_logging:
                configure_logging(new.settings.logging)
        except ConfigError as e:
            logger.error("Config reload failed, keeping previous configuration: %s", e)
            return False

        if new.settings.auto_init:
            initialize_missing(new, self._scheduler)

        old = self._live.publish(new)
        self.reload_count += 1

        if (old.settings.listen, old.settings.port) != (new.settings.listen, new.settings.port):
            logger.warning(
                "Listen address changed to %s:%d, restart required to apply",
                new.settings.listen,
                new.settings.port,
            )
        logger.info("Reloaded configuration: %d repositories", len(new.routing))
        return True

    async def wait_idle(self) -> None:
        """Wait for reloads already accepted to finish."""
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)


class _ConfigFileHandler(FileSystemEventHandler):
    def __init__(self, target: Path, callback: Callable[[], None]) -> None:
        self._target = os.path.abspath(target)
        self._callback = callback

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type not in _WATCHED_EVENTS or event.is_directory:
            return
        paths = (event.src_path, getattr(event, "dest_path", "") or "")
        if any(p and os.path.abspath(os.fsdecode(p)) == self._target for p in paths):
            self._callback()


class ConfigWatcher:
    """Forward filesystem events on the config file to the coordinator.

    watchdog delivers events on its own thread; they are handed to the event
    loop with ``call_soon_threadsafe``.
    """

    def __init__(
        self,
        path: Path,
        coordinator: HotReloadCoordinator,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        self._path = path
        self._coordinator = coordinator
        self._loop = loop
        self._observer: Observer | None = None

    def _on_change(self) -> None:
        self._loop.call_soon_threadsafe(self._coordinator.signal)

    def start(self) -> None:
        handler = _ConfigFileHandler(self._path, self._on_change)
        self._observer = Observer()
        self._observer.schedule(handler, str(self._path.parent.absolute()), recursive=False)
        self._observer.start()
        logger.info("Watching %s for changes", self._path)

    def stop(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=5)
        self._observer = None
