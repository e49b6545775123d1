"""Repository mapping models binding a webhook path to one tracked repository."""

from __future__ import annotations

import os
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RefKind(StrEnum):
    """Kind of ref a mapping tracks."""

    BRANCH = "branch"
    TAG = "tag"


DEFAULT_REF_KIND = RefKind.BRANCH
DEFAULT_REF_NAME = "master"
DEFAULT_REMOTE = "origin"


def normalize_path(path: str) -> str:
    """Strip exactly one trailing slash from a webhook path."""
    if path.endswith("/"):
        return path[:-1]
    return path


def short_name(url: str) -> str:
    """Short repository name used in logs.

    ``git@github.com:org/app.git`` and ``https://github.com/org/app.git``
    both become ``org/app``.
    """
    name = url.rstrip("/")
    if "://" in name:
        name = name.split("://", 1)[1]
        name = name.split("/", 1)[-1]
    elif ":" in name and not name.startswith("/"):
        name = name.split(":", 1)[1]
    return name.removesuffix(".git")


class RefSelector(BaseModel):
    """The (kind, name) pair identifying the authoritative ref."""

    model_config = ConfigDict(frozen=True)

    kind: RefKind = DEFAULT_REF_KIND
    name: str = DEFAULT_REF_NAME

    @property
    def is_tag(self) -> bool:
        return self.kind is RefKind.TAG

    def __str__(self) -> str:
        return f"{self.kind.value} {self.name}"


class SshAuth(BaseModel):
    """SSH key material used for clone and fetch."""

    model_config = ConfigDict(frozen=True)

    private_key: Path | None = None
    passphrase: str | None = Field(default=None, repr=False)

    @property
    def enabled(self) -> bool:
        return self.private_key is not None


class RepoMapping(BaseModel):
    """Immutable description of one tracked repository.

    Built wholesale from configuration and never mutated once published in a
    routing table; a reload replaces it with a new instance.
    """

    model_config = ConfigDict(frozen=True)

    url: str = Field(description="Remote repository URL")
    path: str = Field(description="Webhook path, unique within a routing table")
    directory: Path = Field(description="Local working copy")
    ref: RefSelector = Field(default_factory=RefSelector)
    remote: str = DEFAULT_REMOTE
    secret: str | None = Field(default=None, repr=False)
    auth: SshAuth = Field(default_factory=SshAuth)
    trigger: Path | None = Field(default=None, description="Marker touched after a sync")

    @field_validator("path")
    @classmethod
    def _normalize_path(cls, v: str) -> str:
        return normalize_path(v)

    @field_validator("directory", "trigger")
    @classmethod
    def _expand_user(cls, v: Path | None) -> Path | None:
        return v.expanduser() if v is not None else None

    @property
    def name(self) -> str:
        return short_name(self.url)

    @property
    def key(self) -> str:
        """Identity of the working copy, used to serialize runs."""
        return os.path.abspath(self.directory)

    @property
    def expected_ref(self) -> str:
        """Local ref holding the fetched remote commit."""
        if self.ref.is_tag:
            return f"refs/tags/{self.ref.name}"
        return f"refs/remotes/{self.remote}/{self.ref.name}"

    @property
    def notification_ref(self) -> str:
        """Ref name a push notification carries for this mapping."""
        if self.ref.is_tag:
            return f"refs/tags/{self.ref.name}"
        return f"refs/heads/{self.ref.name}"
