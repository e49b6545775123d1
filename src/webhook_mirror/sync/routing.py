"""Resolve webhook request paths to repository mappings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from webhook_mirror.entities.mapping import normalize_path

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from webhook_mirror.entities.mapping import RepoMapping

logger = logging.getLogger(__name__)


class RoutingTable:
    """Ordered, read-only collection of mappings.

    Lookups scan in registration order and the first match wins, so a
    duplicated path is shadowed by its first occurrence. Duplicates are
    reported once each at construction time.
    """

    def __init__(self, mappings: Iterable[RepoMapping] = ()) -> None:
        self._mappings: tuple[RepoMapping, ...] = tuple(mappings)
        self.duplicates: tuple[str, ...] = self._find_duplicates()

    def _find_duplicates(self) -> tuple[str, ...]:
        seen: set[str] = set()
        duplicates: list[str] = []
        for mapping in self._mappings:
            if mapping.path in seen:
                logger.warning(
                    "Duplicate webhook path %r (%s) ignored, first mapping wins",
                    mapping.path,
                    mapping.url,
                )
                duplicates.append(mapping.path)
            seen.add(mapping.path)
        return tuple(duplicates)

    def resolve(self, path: str) -> tuple[RepoMapping | None, bool]:
        """Find the mapping registered for ``path``."""
        wanted = normalize_path(path)
        for mapping in self._mappings:
            if mapping.path == wanted:
                return mapping, True
        return None, False

    def __iter__(self) -> Iterator[RepoMapping]:
        return iter(self._mappings)

    def __len__(self) -> int:
        return len(self._mappings)

    def active(self) -> list[RepoMapping]:
        """Mappings reachable through ``resolve`` (duplicates excluded)."""
        seen: set[str] = set()
        result = []
        for mapping in self._mappings:
            if mapping.path not in seen:
                seen.add(mapping.path)
                result.append(mapping)
        return result
