"""Result of one synchronization run."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class OutcomeKind(StrEnum):
    """Terminal states of the sync engine."""

    INITIALIZED = "initialized"
    UPDATED = "updated"
    UP_TO_DATE = "up_to_date"
    FAILED = "failed"


@dataclass(frozen=True)
class SyncOutcome:
    """Transient record of a finished run, used for logging and verification."""

    kind: OutcomeKind
    path: str
    local_hash: str | None = None
    remote_hash: str | None = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.kind is not OutcomeKind.FAILED

    @property
    def changed(self) -> bool:
        return self.kind in (OutcomeKind.INITIALIZED, OutcomeKind.UPDATED)

    @classmethod
    def failed(cls, path: str, reason: str, **hashes: str | None) -> SyncOutcome:
        return cls(OutcomeKind.FAILED, path, reason=reason, **hashes)
