"""Test doubles shared across the test suite."""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING, Any

from webhook_mirror.errors import VcsError
from webhook_mirror.sync.backend import FetchResult

if TYPE_CHECKING:
    from pathlib import Path

    from webhook_mirror.config import RetryPolicy
    from webhook_mirror.entities.mapping import RefSelector, RepoMapping

LOCAL_HASH = "1" * 40
REMOTE_HASH = "2" * 40


class FakeBackend:
    """In-memory ``GitBackend`` recording every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.refs: dict[str, str] = {"HEAD": LOCAL_HASH}
        self.remote_hash = REMOTE_HASH
        self.fetch_script: list[FetchResult | Exception] = []
        self.fetch_delay = 0.0
        self.open_error: VcsError | None = None
        self.clone_error: VcsError | None = None
        self.reset_error: VcsError | None = None
        self.reset_moves_head = True
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def count(self, op: str) -> int:
        return sum(1 for call in self.calls if call[0] == op)

    def open(self, directory: Path) -> str:
        self.calls.append(("open", directory))
        if self.open_error is not None:
            raise self.open_error
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        return "handle"

    def close(self, handle: str) -> None:
        self.calls.append(("close", handle))
        with self._lock:
            self.active -= 1

    def clone(self, url: str, directory: Path, ref: RefSelector, auth: Any) -> None:
        self.calls.append(("clone", url, directory, ref))
        if self.clone_error is not None:
            raise self.clone_error
        directory.mkdir(parents=True)
        self.refs["HEAD"] = self.remote_hash

    def fetch(self, handle: str, remote: str, ref: RefSelector, auth: Any) -> FetchResult:
        self.calls.append(("fetch", remote, ref))
        if self.fetch_delay:
            time.sleep(self.fetch_delay)
        result = self.fetch_script.pop(0) if self.fetch_script else FetchResult.UPDATED
        if isinstance(result, Exception):
            raise result
        return result

    def resolve_ref(self, handle: str, ref_name: str) -> str:
        self.calls.append(("resolve_ref", ref_name))
        if ref_name == "HEAD":
            return self.refs["HEAD"]
        if ref_name.startswith(("refs/remotes/", "refs/tags/")):
            return self.refs.get(ref_name, self.remote_hash)
        raise VcsError(f"unknown ref {ref_name}")

    def hard_reset(self, handle: str, commit: str) -> None:
        self.calls.append(("hard_reset", commit))
        if self.reset_error is not None:
            raise self.reset_error
        if self.reset_moves_head:
            self.refs["HEAD"] = commit


class RecordingScheduler:
    """Scheduler stand-in that only records submissions."""

    def __init__(self) -> None:
        self.submitted: list[tuple[RepoMapping, RetryPolicy]] = []

    def submit(self, mapping: RepoMapping, policy: RetryPolicy) -> None:
        self.submitted.append((mapping, policy))
