"""Configuration loading for rss_watcher."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional
from xml.etree import ElementTree as ET

from sqlalchemy.engine import URL

logger = logging.getLogger(__name__)

DEFAULT_FETCH_INTERVAL_MS = 120000
DEFAULT_REQUEST_TIMEOUT = 10.0


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class DatabaseConfig:
    connection_string: Optional[str] = None


@dataclass
class AppConfig:
    env_file: Optional[str] = None
    fetch_interval_ms: Optional[int] = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)


def _resolve_path(base_path: Path, target_path: str) -> str:
    """Resolve a path relative to the base config file if it's not absolute."""
    target = Path(target_path)
    if target.is_absolute():
        return str(target)
    return str((base_path.parent / target).resolve())


def parse_env_config(path: str) -> Dict[str, str]:
    """Parse environment variables from XML."""
    env_vars = {}
    if not path:
        return env_vars

    logger.info("Loading environment configuration from %s", path)
    try:
        tree = ET.parse(path)
        root = tree.getroot()
        for var in root.findall("variable"):
            name = var.attrib.get("name")
            value = var.text
            if name and value:
                env_vars[name] = value.strip()
    except Exception as exc:
        logger.warning("Failed to load environment config: %s", exc)
        raise

    return env_vars


def _parse_positive_int(value: str, name: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise ValueError(f"Invalid {name} value {value!r}") from None
    if number <= 0:
        raise ValueError(f"{name} must be positive, got {number}")
    return number


def parse_app_config(path: str) -> AppConfig:
    """Parse the main application configuration XML."""
    config_path = Path(path).resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    logger.info("Loading application configuration from %s", config_path)
    tree = ET.parse(config_path)
    root = tree.getroot()

    # Env
    env_node = root.find("env")
    env_file = (
        _resolve_path(config_path, env_node.text.strip())
        if env_node is not None and env_node.text
        else None
    )

    interval_text = root.findtext("fetch-interval-ms")
    fetch_interval_ms = (
        _parse_positive_int(interval_text.strip(), "fetch-interval-ms")
        if interval_text and interval_text.strip()
        else None
    )

    try:
        request_timeout = float(
            root.findtext("request-timeout", str(DEFAULT_REQUEST_TIMEOUT))
        )
    except ValueError:
        raise ValueError("request-timeout must be a number of seconds") from None

    # Logging
    log_node = root.find("logging")
    logging_config = LoggingConfig()
    if log_node is not None:
        logging_config.level = log_node.findtext("level", "INFO")
        log_file = log_node.findtext("file")
        if log_file:
            logging_config.file = _resolve_path(config_path, log_file)

    # Database
    db_node = root.find("database")
    db_config = DatabaseConfig()
    if db_node is not None:
        connection_string = db_node.findtext("connection-string")
        if connection_string and connection_string.strip():
            db_config.connection_string = connection_string.strip()

    return AppConfig(
        env_file=env_file,
        fetch_interval_ms=fetch_interval_ms,
        request_timeout=request_timeout,
        logging=logging_config,
        database=db_config,
    )


def resolve_connection_string(
    config: AppConfig, environ: Optional[Mapping[str, str]] = None
) -> str:
    """Return the configured connection string, falling back to the environment."""
    environ = os.environ if environ is None else environ
    if config.database.connection_string:
        return config.database.connection_string
    if environ.get("DATABASE_URL"):
        return environ["DATABASE_URL"]

    names = ("DB_HOST", "DB_BASE", "DB_USER", "DB_PASS")
    missing = [name for name in names if not environ.get(name)]
    if missing:
        raise RuntimeError(
            "No database configured: set <connection-string>, $DATABASE_URL or "
            + ", ".join(f"${name}" for name in missing)
        )
    url = URL.create(
        "mysql+pymysql",
        username=environ["DB_USER"],
        password=environ["DB_PASS"],
        host=environ["DB_HOST"],
        database=environ["DB_BASE"],
    )
    return url.render_as_string(hide_password=False)


def resolve_fetch_interval(
    config: AppConfig, environ: Optional[Mapping[str, str]] = None
) -> float:
    """Return the pause between cycles in seconds."""
    environ = os.environ if environ is None else environ
    if config.fetch_interval_ms is not None:
        return config.fetch_interval_ms / 1000

    value = environ.get("FETCH_INTERVAL")
    if not value:
        logger.warning("$FETCH_INTERVAL not set, using default of 2m")
        return DEFAULT_FETCH_INTERVAL_MS / 1000
    return _parse_positive_int(value, "$FETCH_INTERVAL") / 1000
