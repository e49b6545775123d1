"""Tests for log sink setup."""

from __future__ import annotations

import json
import logging

import pytest

from webhook_mirror.config import LogFormat, LoggingSettings
from webhook_mirror.logging_config import JsonFormatter, RepoLogAdapter, configure_logging


@pytest.fixture
def package_logger():
    """Restore the package logger after a test reconfigures it."""
    logger = logging.getLogger("webhook_mirror")
    saved = (list(logger.handlers), logger.level, logger.propagate)
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    handlers, level, propagate = saved
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate


class TestConfigureLogging:
    def test_file_output_text(self, package_logger, tmp_path) -> None:
        log_file = tmp_path / "mirror.log"
        configure_logging(LoggingSettings(output=str(log_file), level="warning"))

        logging.getLogger("webhook_mirror.sync.engine").info("hidden")
        logging.getLogger("webhook_mirror.sync.engine").warning("shown")
        for handler in package_logger.handlers:
            handler.flush()

        content = log_file.read_text()
        assert "hidden" not in content
        assert "webhook_mirror.sync.engine - WARNING - shown" in content

    def test_json_output(self, package_logger, tmp_path) -> None:
        log_file = tmp_path / "mirror.json"
        configure_logging(LoggingSettings(format=LogFormat.JSON, output=str(log_file)))

        logging.getLogger("webhook_mirror.test").info("hello %s", "world")
        for handler in package_logger.handlers:
            handler.flush()

        entry = json.loads(log_file.read_text().strip())
        assert entry["msg"] == "hello world"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "webhook_mirror.test"

    def test_reconfigure_replaces_handler(self, package_logger, tmp_path) -> None:
        configure_logging(LoggingSettings(output=str(tmp_path / "a.log")))
        configure_logging(LoggingSettings(output="stderr"))

        assert len(package_logger.handlers) == 1
        assert isinstance(package_logger.handlers[0], logging.StreamHandler)
        assert not isinstance(package_logger.handlers[0], logging.FileHandler)


class TestRepoLogAdapter:
    def test_prefix_and_fields(self, make_mapping) -> None:
        records: list[logging.LogRecord] = []

        class Collect(logging.Handler):
            def emit(self, record: logging.LogRecord) -> None:
                records.append(record)

        logger = logging.getLogger("webhook_mirror.adapter_test")
        logger.setLevel(logging.INFO)
        handler = Collect()
        logger.addHandler(handler)
        try:
            RepoLogAdapter(logger, make_mapping(url="git@github.com:org/app.git")).info("syncing")
        finally:
            logger.removeHandler(handler)

        (record,) = records
        assert record.getMessage() == "[org/app /hooks/app] syncing"
        assert record.repo == "org/app"  # type: ignore[attr-defined]
        assert json.loads(JsonFormatter().format(record))["path"] == "/hooks/app"
