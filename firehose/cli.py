"""Command-line interface for the firehose feed aggregator."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import pprint
from pathlib import Path
from typing import List, Optional

from .aggregator import MIXED_LANGUAGE, build_client, build_default
from .config import parse_app_config, parse_members_config

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Aggregate community member feeds into one combined feed."
    )
    parser.add_argument(
        "--config",
        default="configs/config.xml",
        help="Path to the main configuration XML file.",
    )
    parser.add_argument(
        "--count",
        type=int,
        default=None,
        help="Maximum number of items in the combined feed.",
    )
    parser.add_argument(
        "--language",
        default=MIXED_LANGUAGE,
        help="Only include members writing in this language code ('mixed' for all).",
    )

    # Overrides for logging/debugging
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (e.g. DEBUG, INFO, WARNING). Overrides config.",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Optional path to a log file. Overrides config.",
    )

    return parser


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _file_handler(log_file: str) -> logging.Handler:
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(log_path, encoding="utf-8")


def configure_logging(level_name: str, log_file: Optional[str] = None) -> None:
    """Route log records to the console and, optionally, a log file.

    Any handlers installed by an earlier call are replaced.
    """
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unsupported log level: {level_name}")

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(_file_handler(log_file))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
    logger.debug(
        "Logging at %s to %s",
        logging.getLevelName(level),
        log_file or "console only",
    )


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        app_config = parse_app_config(args.config)

        # CLI overrides config
        configure_logging(
            args.log_level or app_config.logging.level,
            args.log_file or app_config.logging.file,
        )
        logger.info(
            "Active Configuration:\n%s", pprint.pformat(dataclasses.asdict(app_config))
        )

        members = parse_members_config(app_config.members_file)
        if not members:
            raise RuntimeError("No community members found in the configuration.")

        client = build_client(app_config)
        try:
            aggregator = build_default(members, app_config, client=client)
            feed = aggregator.load_feed(count=args.count, language_code=args.language)
        finally:
            client.close()
    except ValueError as exc:
        parser.error(str(exc))
    except (RuntimeError, FileNotFoundError) as exc:
        logger.error("%s", exc)
        return 1
    except Exception:  # noqa: BLE001
        logger.exception("Unexpected error during execution.")
        return 1

    print(json.dumps(feed.to_dict(), indent=2, ensure_ascii=False))
    return 0
