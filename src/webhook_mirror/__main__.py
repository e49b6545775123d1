"""Command line entry point: ``webhook-mirror [--config PATH] [--check]``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from webhook_mirror import __version__
from webhook_mirror.config import find_config_file
from webhook_mirror.errors import ConfigError
from webhook_mirror.logging_config import TEXT_FORMAT, configure_logging
from webhook_mirror.sync.live import LiveConfiguration
from webhook_mirror.sync.service import MirrorService

logger = logging.getLogger("webhook_mirror")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="webhook-mirror",
        description="Keep local git working copies in sync with remotes on push webhooks.",
    )
    parser.add_argument("--config", type=Path, help="Configuration file (default: search standard paths)")
    parser.add_argument("--check", action="store_true", help="Validate the configuration and exit")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    # Until the configured sink is known, report to stderr
    logging.basicConfig(level=logging.INFO, format=TEXT_FORMAT, stream=sys.stderr)

    try:
        path = args.config or find_config_file()
        config = LiveConfiguration.load(path)
    except ConfigError as e:
        logger.error("Failed to read config file: %s", e)
        return 1

    if args.check:
        logger.info("%s: %d repositories configured", path, len(config.routing.active()))
        return 0

    try:
        configure_logging(config.settings.logging)
    except ConfigError as e:
        logger.error("Failed to set up logging: %s", e)
        return 1

    service = MirrorService(config)
    try:
        asyncio.run(service.run_forever())
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(main())
