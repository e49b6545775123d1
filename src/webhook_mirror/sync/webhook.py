"""HTTP server receiving push webhooks, one path per repository mapping."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from aiohttp import web

if TYPE_CHECKING:
    from webhook_mirror.sync.dispatcher import EventDispatcher
    from webhook_mirror.sync.live import LiveConfigHolder

logger = logging.getLogger(__name__)


class WebhookServer:
    """aiohttp front end for the event dispatcher.

    Every POST path is handed to the dispatcher; the response only
    acknowledges receipt and never waits for the sync to finish.
    """

    def __init__(self, dispatcher: EventDispatcher, live: LiveConfigHolder) -> None:
        self._dispatcher = dispatcher
        self._live = live
        self._app: web.Application | None = None
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

    def build_app(self) -> web.Application:
        """Create the application with its routes."""
        app = web.Application()
        app.router.add_get("/health", self._handle_health)
        app.router.add_post("/{tail:.*}", self._handle_webhook)
        return app

    async def _handle_webhook(self, request: web.Request) -> web.Response:
        """Handle incoming webhook request."""
        try:
            payload = await request.read()
        except Exception:
            logger.exception("Failed to read webhook payload")
            return web.Response(text="Bad Request", status=400)

        result = self._dispatcher.dispatch(request.path, request.headers, payload)
        return web.Response(text=result.value, status=result.status)

    async def _handle_health(self, _request: web.Request) -> web.Response:
        """Health check endpoint."""
        snapshot = self._live.current
        return web.json_response({
            "status": "ok",
            "repositories": len(snapshot.routing.active()),
            "loaded_at": snapshot.loaded_at.isoformat(),
        })

    async def start(self) -> None:
        """Start the webhook server on the configured address."""
        settings = self._live.current.settings
        self._app = self.build_app()
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, settings.listen, settings.port)
        await self._site.start()

        logger.info("Webhook server listening on %s:%d", settings.listen, settings.port)

    async def stop(self) -> None:
        """Stop the webhook server."""
        if self._site:
            await self._site.stop()
        if self._runner:
            await self._runner.cleanup()
        self._site = None
        self._runner = None

        logger.info("Webhook server stopped")
