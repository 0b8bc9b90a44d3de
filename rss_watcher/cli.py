"""Command-line interface for the rss_watcher application."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import os
import pprint
from pathlib import Path
from typing import List, Optional

from . import db
from .config import (
    AppConfig,
    parse_app_config,
    parse_env_config,
    resolve_connection_string,
    resolve_fetch_interval,
)
from .runner import run_cycle, run_forever

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Watch RSS/Atom feeds and push new entries as notifications."
    )
    parser.add_argument(
        "--config",
        default="configs/config.xml",
        help="Path to the main configuration XML file.",
    )
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
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single cycle over all feeds and exit.",
    )
    return parser


def configure_logging(level_name: str, log_file: Optional[str] = None) -> None:
    """Initialise logging according to options."""
    log_level = getattr(logging, level_name.upper(), None)
    if not isinstance(log_level, int):
        raise ValueError(f"Unsupported log level: {level_name}")

    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.setLevel(log_level)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    # Request lines from urllib3 drown out the watcher's own output.
    logging.getLogger("urllib3").setLevel(max(log_level, logging.WARNING))

    if log_file:
        log_path = Path(log_file)
        if log_path.parent and not log_path.parent.exists():
            log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        logger.debug(
            "Logger initialised with level %s and file output to %s",
            level_name.upper(),
            log_path,
        )
    else:
        logger.debug(
            "Logger initialised with console output at level %s", level_name.upper()
        )


def load_config(path: str) -> AppConfig:
    """Load the XML config and export its env file into ``os.environ``."""
    app_config = parse_app_config(path)
    if app_config.env_file:
        os.environ.update(parse_env_config(app_config.env_file))
    return app_config


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        app_config = load_config(args.config)

        # CLI overrides config
        log_level = args.log_level or app_config.logging.level
        log_file = args.log_file or app_config.logging.file
        configure_logging(log_level, log_file)

        logger.info("Starting rss-watcher")
        config_dict = dataclasses.asdict(app_config)
        if config_dict["database"].get("connection_string"):
            config_dict["database"]["connection_string"] = "***MASKED***"
        logger.info("Active Configuration:\n%s", pprint.pformat(config_dict))

        interval = resolve_fetch_interval(app_config)
        engine = db.init_engine(resolve_connection_string(app_config))
        session_factory = db.get_session_factory(engine)

        if args.once:
            results = run_cycle(session_factory, timeout=app_config.request_timeout)
            for result in results:
                logger.info(
                    "Feed %s: %s (sent=%d, failed=%d)",
                    result.feed_id,
                    result.status,
                    result.sent,
                    result.failed,
                )
        else:
            run_forever(
                session_factory, interval, timeout=app_config.request_timeout
            )
    except ValueError as exc:
        parser.error(str(exc))
    except (RuntimeError, FileNotFoundError) as exc:
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Stopping rss-watcher")
        return 0
    except Exception:  # noqa: BLE001
        logger.exception("Unexpected error during execution.")
        return 1

    return 0
