"""Shared test fixtures for webhook-mirror."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from webhook_mirror.entities.mapping import RefKind, RefSelector, RepoMapping

from tests.helpers import FakeBackend, RecordingScheduler


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def recording_scheduler() -> RecordingScheduler:
    return RecordingScheduler()


@pytest.fixture
def make_mapping(tmp_path: Path):
    """Factory for mappings rooted in the test's temporary directory."""

    def _make(
        path: str = "/hooks/app",
        url: str = "git@host:org/app.git",
        directory: Path | None = None,
        kind: RefKind = RefKind.BRANCH,
        name: str = "main",
        **kwargs: Any,
    ) -> RepoMapping:
        return RepoMapping(
            url=url,
            path=path,
            directory=directory if directory is not None else tmp_path / "work",
            ref=RefSelector(kind=kind, name=name),
            **kwargs,
        )

    return _make


@pytest.fixture
def write_config(tmp_path: Path):
    """Write a YAML configuration file and return its path."""

    def _write(text: str, name: str = "config.yaml") -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write
