"""Log sink setup for the webhook-mirror process."""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from webhook_mirror.config import LogFormat
from webhook_mirror.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import MutableMapping

    from webhook_mirror.config import LoggingSettings
    from webhook_mirror.entities.mapping import RepoMapping

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Context attributes attached by RepoLogAdapter
_CONTEXT_FIELDS = ("repo", "path")

_ROOT = "webhook_mirror"


class JsonFormatter(logging.Formatter):
    """Render each record as a single JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for field in _CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value
        if record.exc_info:
            entry["error"] = self.formatException(record.exc_info)
        return json.dumps(entry)


class RepoLogAdapter(logging.LoggerAdapter):
    """Prefix messages with the repository they concern."""

    def __init__(self, logger: logging.Logger, mapping: RepoMapping) -> None:
        super().__init__(logger, {"repo": mapping.name, "path": mapping.path})

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs.setdefault("extra", {}).update(self.extra)
        return f"[{self.extra['repo']} {self.extra['path']}] {msg}", kwargs


def _handler_for(output: str) -> logging.Handler:
    if output == "stdout":
        return logging.StreamHandler(sys.stdout)
    if output == "stderr":
        return logging.StreamHandler(sys.stderr)
    try:
        return logging.FileHandler(output, encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"cannot open log output {output!r}: {e}") from e


def configure_logging(settings: LoggingSettings) -> None:
    """Install a single handler on the package logger, replacing any previous one.

    Raises:
        ConfigError: The log file cannot be opened; the current handlers stay.
    """
    logger = logging.getLogger(_ROOT)
    handler = _handler_for(settings.output)
    if settings.format is LogFormat.JSON:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    logger.addHandler(handler)
    logger.setLevel(settings.level)
    logger.propagate = False
