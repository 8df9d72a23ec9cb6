"""Command line entry point."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import anyio

from .bridge.runtime import run_bot
from .config import load_config
from .errors import ConfigError
from .logging import get_logger, setup_logging

logger = get_logger("fuuka_bot")


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fuuka-bot")
    parser.add_argument(
        "-c",
        "--config",
        default="fuuka-bot.toml",
        help="path to the TOML config file (default: %(default)s)",
    )
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    setup_logging(debug=args.debug)
    try:
        config = load_config(Path(args.config))
    except ConfigError as exc:
        logger.error("fuuka.config.invalid", error=str(exc))
        return 2
    try:
        anyio.run(run_bot, config)
    except KeyboardInterrupt:
        logger.info("fuuka.shutdown")
    return 0


if __name__ == "__main__":
    sys.exit(main())
