"""Service that wires the webhook server, scheduler and hot reload together."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from webhook_mirror.sync.backend import GitPythonBackend
from webhook_mirror.sync.dispatcher import EventDispatcher
from webhook_mirror.sync.engine import SyncEngine
from webhook_mirror.sync.live import LiveConfigHolder
from webhook_mirror.sync.reload import ConfigWatcher, HotReloadCoordinator, initialize_missing
from webhook_mirror.sync.scheduler import SyncScheduler
from webhook_mirror.sync.webhook import WebhookServer

if TYPE_CHECKING:
    from webhook_mirror.sync.backend import GitBackend
    from webhook_mirror.sync.live import LiveConfiguration

logger = logging.getLogger(__name__)


class MirrorService:
    """Runs the mirror until cancelled.

    Orchestrates:
    - Webhook server dispatching push events to the scheduler
    - Per-repository serialized sync runs
    - Config file watching and hot reload
    """

    def __init__(
        self,
        config: LiveConfiguration,
        backend: GitBackend | None = None,
        watch: bool = True,
    ) -> None:
        """Initialize the service.

        Args:
            config: Initial configuration, loaded at startup.
            backend: Version-control backend (GitPython by default).
            watch: Reload the configuration when its source file changes.
        """
        self._live = LiveConfigHolder(config)
        self._scheduler = SyncScheduler(SyncEngine(backend or GitPythonBackend()))
        self._dispatcher = EventDispatcher(self._live, self._scheduler)
        self._webhook = WebhookServer(self._dispatcher, self._live)
        self._reloader: HotReloadCoordinator | None = None
        self._watcher: ConfigWatcher | None = None

        if watch and config.source is not None:
            self._reloader = HotReloadCoordinator(config.source, self._live, self._scheduler)

    @property
    def live(self) -> LiveConfigHolder:
        return self._live

    @property
    def scheduler(self) -> SyncScheduler:
        return self._scheduler

    async def start(self) -> None:
        """Start the webhook server and the config watcher."""
        config = self._live.current
        if config.settings.auto_init:
            initialize_missing(config, self._scheduler)

        await self._webhook.start()

        if self._reloader is not None and config.source is not None:
            self._watcher = ConfigWatcher(config.source, self._reloader, asyncio.get_running_loop())
            self._watcher.start()

        logger.info("Mirror service started with %d repositories", len(config.routing.active()))

    async def stop(self) -> None:
        """Stop accepting work and wait for in-flight runs."""
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None
        await self._webhook.stop()
        if self._reloader is not None:
            await self._reloader.wait_idle()
        await self._scheduler.wait_idle()
        logger.info("Mirror service stopped")

    async def run_forever(self) -> None:
        """Start services and run until cancelled."""
        await self.start()
        try:
            while True:
                await asyncio.sleep(3600)
        except asyncio.CancelledError:
            await self.stop()
