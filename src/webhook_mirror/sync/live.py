"""Process-wide live configuration, replaced wholesale on reload."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from webhook_mirror.config import ServiceSettings, load_config
from webhook_mirror.sync.routing import RoutingTable

if TYPE_CHECKING:
    from pathlib import Path


@dataclass(frozen=True)
class LiveConfiguration:
    """Immutable snapshot of routing and policy settings."""

    routing: RoutingTable
    settings: ServiceSettings = field(default_factory=ServiceSettings)
    source: Path | None = None
    loaded_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    @classmethod
    def load(cls, path: Path) -> LiveConfiguration:
        """Build a brand-new snapshot from the file at ``path``.

        Raises:
            ConfigError: The file cannot be parsed or validated.
        """
        settings, mappings = load_config(path)
        return cls(routing=RoutingTable(mappings), settings=settings, source=path)


class LiveConfigHolder:
    """Single-writer reference to the current ``LiveConfiguration``.

    Readers take ``current`` once per request and keep using that snapshot.
    """

    def __init__(self, initial: LiveConfiguration) -> None:
        self._current = initial
        self._write_lock = threading.Lock()

    @property
    def current(self) -> LiveConfiguration:
        return self._current

    def publish(self, new: LiveConfiguration) -> LiveConfiguration:
        """Swap in ``new`` and return the snapshot it replaced."""
        with self._write_lock:
            old = self._current
            self._current = new
        return old
