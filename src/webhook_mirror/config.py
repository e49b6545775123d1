"""Configuration models and YAML loading for webhook-mirror."""

from __future__ import annotations

import logging
from enum import StrEnum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from webhook_mirror.entities.mapping import (
    DEFAULT_REF_KIND,
    DEFAULT_REF_NAME,
    DEFAULT_REMOTE,
    RefKind,
    RefSelector,
    RepoMapping,
    SshAuth,
)
from webhook_mirror.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_NAMES = ("config.yaml", "config.yml")
CONFIG_SEARCH_PATHS = (Path("/etc/webhook-mirror"), Path("."))


class LogFormat(StrEnum):
    """Output format of log records."""

    TEXT = "text"
    JSON = "json"


class LoggingSettings(BaseModel):
    """Where and how log records are written."""

    model_config = ConfigDict(frozen=True)

    format: LogFormat = Field(default=LogFormat.TEXT, description="text or json")
    output: str = Field(default="stdout", description="stdout, stderr or a file path")
    level: str = Field(default="INFO", description="Minimum level name")

    @field_validator("level")
    @classmethod
    def _valid_level(cls, v: str) -> str:
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level {v!r}")
        return level


class RetryPolicy(BaseModel):
    """Bounded retry applied to the remote fetch step."""

    model_config = ConfigDict(frozen=True)

    attempts: int = Field(default=1, ge=1, description="Total fetch attempts")
    delay: float = Field(default=2.0, ge=0, description="Seconds between attempts")


class ServiceSettings(BaseModel):
    """Global settings derived from the configuration file."""

    model_config = ConfigDict(frozen=True)

    listen: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    auto_init: bool = Field(default=False, description="Clone missing working copies on load")
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


class RepoEntry(BaseModel):
    """One ``repos`` item exactly as written in the configuration file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    url: str
    path: str
    directory: Path
    ref_kind: str | None = Field(default=None, alias="refKind")
    ref_name: str | None = Field(default=None, alias="refName")
    remote: str | None = None
    secret: str | None = None
    ssh_priv_key: Path | None = Field(default=None, alias="sshPrivKey")
    ssh_pass_phrase: str | None = Field(default=None, alias="sshPassPhrase")
    trigger: Path | None = None

    @field_validator(
        "ref_kind", "ref_name", "remote", "secret", "ssh_priv_key", "ssh_pass_phrase", "trigger",
        mode="before",
    )
    @classmethod
    def _empty_is_unset(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("url", "path", "directory", mode="before")
    @classmethod
    def _required_text(cls, v: Any) -> Any:
        if _blank_to_none(v) is None:
            raise ValueError("must not be empty")
        return v

    def to_mapping(self) -> RepoMapping:
        """Apply defaults and build the immutable mapping."""
        kind = DEFAULT_REF_KIND
        if self.ref_kind is not None:
            try:
                kind = RefKind(self.ref_kind.lower())
            except ValueError:
                logger.warning(
                    "Unknown ref kind %r for %s, using %s", self.ref_kind, self.path, DEFAULT_REF_KIND
                )

        return RepoMapping(
            url=self.url,
            path=self.path,
            directory=self.directory,
            ref=RefSelector(kind=kind, name=self.ref_name or DEFAULT_REF_NAME),
            remote=self.remote or DEFAULT_REMOTE,
            secret=self.secret,
            auth=SshAuth(private_key=self.ssh_priv_key, passphrase=self.ssh_pass_phrase),
            trigger=self.trigger,
        )


class ConfigFile(BaseModel):
    """Top-level configuration document."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    listen: str = "0.0.0.0"
    port: int = 8080
    retries: int = 1
    retry_delay: float = Field(default=2.0, alias="retryDelay")
    auto_init: bool = Field(default=False, alias="autoInit")
    log: LoggingSettings = Field(default_factory=LoggingSettings)
    repos: list[RepoEntry] = Field(default_factory=list)

    def settings(self) -> ServiceSettings:
        return ServiceSettings(
            listen=self.listen,
            port=self.port,
            retry=RetryPolicy(attempts=self.retries, delay=self.retry_delay),
            auto_init=self.auto_init,
            logging=self.log,
        )

    def mappings(self) -> list[RepoMapping]:
        return [entry.to_mapping() for entry in self.repos]


def find_config_file(search_paths: tuple[Path, ...] = CONFIG_SEARCH_PATHS) -> Path:
    """Return the first existing configuration file along ``search_paths``.

    Raises:
        ConfigError: No candidate exists.
    """
    for directory in search_paths:
        for name in CONFIG_NAMES:
            candidate = directory / name
            if candidate.is_file():
                return candidate
    searched = ", ".join(str(p) for p in search_paths)
    raise ConfigError(f"no config.yaml found in {searched}")


def load_config(path: Path) -> tuple[ServiceSettings, list[RepoMapping]]:
    """Parse and validate a configuration file from scratch into settings and mappings.

    Raises:
        ConfigError: The file is unreadable, not YAML, or fails validation.
    """
    try:
        with path.open(encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: top level must be a mapping")

    try:
        document = ConfigFile.model_validate(raw)
        return document.settings(), document.mappings()
    except ValidationError as e:
        raise ConfigError(f"invalid configuration in {path}: {e}") from e
