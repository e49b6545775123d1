"""Best-effort trigger marker refresh after a successful sync."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from webhook_mirror.errors import TriggerError

if TYPE_CHECKING:
    from pathlib import Path

    from webhook_mirror.entities.mapping import RepoMapping

logger = logging.getLogger(__name__)


def ensure_fresh(marker: Path) -> None:
    """Set the marker's mtime to now, creating it empty if missing.

    Raises:
        TriggerError: The marker could neither be touched nor created.
    """
    try:
        os.utime(marker, None)
        return
    except FileNotFoundError:
        pass
    except OSError as e:
        raise TriggerError(f"cannot update {marker}: {e}") from e

    try:
        marker.touch()
    except OSError as e:
        raise TriggerError(f"cannot create {marker}: {e}") from e
    if not marker.exists():
        raise TriggerError(f"{marker} still missing after create")


class TriggerNotifier:
    """Signal downstream consumers through the mapping's trigger marker."""

    def notify(self, mapping: RepoMapping) -> bool:
        """Refresh the marker; returns False on failure, never raises."""
        if mapping.trigger is None:
            return False
        try:
            ensure_fresh(mapping.trigger)
        except TriggerError as e:
            logger.error("Trigger for %s failed: %s", mapping.name, e)
            return False
        logger.info("Triggered %s for %s", mapping.trigger, mapping.name)
        return True
