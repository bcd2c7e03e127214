"""
Logging setup for the roster backend.

Three loggers live under the ``roster.`` namespace:
- roster.api: request handling and error translation
- roster.services: roster mutations (events, squads, assignments, radio tree)
- roster.db: database failures and dropped best-effort writes

With ROSTER_ENV=production each logger writes JSON lines to its own rotating
file in ROSTER_LOG_DIR; otherwise everything goes to stdout in a readable
one-line format. ROSTER_LOG_LEVEL sets the level for all three.
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional


LOGGER_NAMES = ("api", "services", "db")
NAMESPACE = "roster"

ROTATE_BYTES = 10 * 1024 * 1024
ROTATE_BACKUPS = 5

# Attributes every LogRecord has; the rest arrived through extra={...}
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    Carries timestamp, level, logger, message and source location, plus
    every field passed through ``extra`` (e.g. event_id, slot_guid).
    """

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        payload.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and key not in payload
        )
        return json.dumps(payload, default=str)


class ConsoleFormatter(logging.Formatter):
    """``[2026-10-19 20:30:45] INFO - roster.services - Assigned Sparrow to slot slt_01...``"""

    def __init__(self):
        super().__init__(
            fmt="[%(asctime)s] %(levelname)s - %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def _level_from_env() -> int:
    return getattr(logging, os.environ.get("ROSTER_LOG_LEVEL", "INFO").upper(), logging.INFO)


def _production() -> bool:
    return os.environ.get("ROSTER_ENV", "development").lower() == "production"


def _build_handler(name: str, production: bool) -> logging.Handler:
    """Rotating JSON file in production, readable stdout otherwise."""
    if not production:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(ConsoleFormatter())
        return handler

    log_dir = Path(os.environ.get("ROSTER_LOG_DIR", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        log_dir / f"{name}.log",
        maxBytes=ROTATE_BYTES,
        backupCount=ROTATE_BACKUPS,
        encoding="utf-8",
    )
    handler.setFormatter(JSONFormatter())
    return handler


def configure_logging() -> Dict[str, logging.Logger]:
    """
    (Re)build the handlers of all roster loggers from the environment.

    Loggers do not propagate to the root logger, so calling this twice
    never duplicates output.

    Returns:
        Mapping of short name (api, services, db) to Logger
    """
    level = _level_from_env()
    production = _production()

    configured = {}
    for name in LOGGER_NAMES:
        logger = logging.getLogger(f"{NAMESPACE}.{name}")
        logger.setLevel(level)
        logger.propagate = False
        logger.handlers.clear()

        handler = _build_handler(name, production)
        handler.setLevel(level)
        logger.addHandler(handler)

        configured[name] = logger
    return configured


_loggers: Optional[Dict[str, logging.Logger]] = None


def get_logger(name: str) -> logging.Logger:
    """
    Logger for one of the roster areas, configuring logging on first use.

    Raises:
        ValueError: If name is not api, services or db

    Example:
        >>> logger = get_logger("services")
        >>> logger.info("Slot assigned", extra={"slot_guid": "slt_01..."})
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
    """Configure logging at application startup."""
    global _loggers
    _loggers = configure_logging()
    return _loggers
