"""
Structured logging configuration for the TeamRSVP backend.

Every component logs through one of a fixed set of channel loggers named
``teamrsvp.<channel>``:
- api: Route-level failures and app lifecycle
- services: Event, response, series, team and fixture import operations
- scheduler: Periodic fixture import cycles
- feed: Fixture feed HTTP calls
- db: Database errors and migrations

Output depends on TEAMRSVP_ENV:
- production: one JSON object per line in a rotating file per channel
- anything else: readable console lines (TEAMRSVP_LOG_FORMAT=json switches
  the console to JSON as well)

Fields passed through ``extra={...}`` (team_id, event_id, counts) are
kept as top-level JSON keys and appended to console lines.
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional


LOGGER_PREFIX = "teamrsvp"
LOGGER_NAMES = ("api", "services", "scheduler", "feed", "db")

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime"}


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per record, extras flattened into the object."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "channel": record.name.removeprefix(f"{LOGGER_PREFIX}."),
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        entry.update(_extra_fields(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """
    Readable single-line formatter.

    Example:
        [2024-08-02 18:30:45] INFO services: Imported fixtures for team 3 (created=2 skipped=1)
    """

    def __init__(self):
        super().__init__(fmt="[%(asctime)s] %(levelname)s %(channel)s: %(message)s%(details)s",
                         datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        extras = _extra_fields(record)
        record.channel = record.name.removeprefix(f"{LOGGER_PREFIX}.")
        record.details = (
            " (" + " ".join(f"{k}={v}" for k, v in extras.items()) + ")" if extras else ""
        )
        return super().format(record)


def _env(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _log_level() -> int:
    level = logging.getLevelName(_env("TEAMRSVP_LOG_LEVEL", "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def _build_handler(channel: str, production: bool) -> logging.Handler:
    if production:
        log_dir = Path(_env("TEAMRSVP_LOG_DIR", "logs"))
        log_dir.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.handlers.RotatingFileHandler(
            log_dir / f"{channel}.log",
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
            encoding="utf-8",
        )
        handler.setFormatter(JSONFormatter())
        return handler

    handler = logging.StreamHandler(sys.stdout)
    if _env("TEAMRSVP_LOG_FORMAT", "text").lower() == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(ConsoleFormatter())
    return handler


def configure_logging() -> Dict[str, logging.Logger]:
    """
    (Re)configure every channel logger from the environment.

    Channel loggers do not propagate to the root logger, so uvicorn's own
    logging setup never duplicates their lines.

    Returns:
        Mapping of channel name to Logger
    """
    production = _env("TEAMRSVP_ENV", "development").lower() == "production"
    level = _log_level()

    loggers = {}
    for channel in LOGGER_NAMES:
        logger = logging.getLogger(f"{LOGGER_PREFIX}.{channel}")
        logger.setLevel(level)
        logger.propagate = False
        logger.handlers.clear()
        logger.addHandler(_build_handler(channel, production))
        loggers[channel] = logger
    return loggers


_loggers: Optional[Dict[str, logging.Logger]] = None


def get_logger(name: str) -> logging.Logger:
    """
    Get a channel logger, configuring logging on first use.

    Raises:
        ValueError: If the channel name is not one of LOGGER_NAMES
    """
    global _loggers

    if _loggers is None:
        _loggers = configure_logging()

    try:
        return _loggers[name]
    except KeyError:
        raise ValueError(
            f"Unknown logger name: {name}. Valid names: {', '.join(LOGGER_NAMES)}"
        )


def init_logging() -> Dict[str, logging.Logger]:
    """Configure logging eagerly at application start."""
    global _loggers
    _loggers = configure_logging()
    return _loggers
