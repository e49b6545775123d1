"""Repository synchronization engine, routing and hot reload."""

from webhook_mirror.sync.backend import FetchResult, GitBackend, GitPythonBackend
from webhook_mirror.sync.dispatcher import DispatchResult, EventDispatcher
from webhook_mirror.sync.engine import SyncEngine
from webhook_mirror.sync.live import LiveConfigHolder, LiveConfiguration
from webhook_mirror.sync.reload import ConfigWatcher, HotReloadCoordinator
from webhook_mirror.sync.retry import RetryController
from webhook_mirror.sync.routing import RoutingTable
from webhook_mirror.sync.scheduler import SyncScheduler
from webhook_mirror.sync.service import MirrorService
from webhook_mirror.sync.trigger import TriggerNotifier
from webhook_mirror.sync.webhook import WebhookServer

__all__ = [
    "ConfigWatcher",
    "DispatchResult",
    "EventDispatcher",
    "FetchResult",
    "GitBackend",
    "GitPythonBackend",
    "HotReloadCoordinator",
    "LiveConfigHolder",
    "LiveConfiguration",
    "MirrorService",
    "RetryController",
    "RoutingTable",
    "SyncEngine",
    "SyncScheduler",
    "TriggerNotifier",
    "WebhookServer",
]
