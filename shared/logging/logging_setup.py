"""Logging bootstrap shared by the API server and the ingest runner.

Console lines are colored by level, the log file receives the same lines as
plain text. Timestamps are rendered in the zone named by ``TIMEZONE``.
"""

import logging
import logging.config
import os
from datetime import datetime
from typing import Any

from pytz import timezone

LOGGER_NAME = "knowledge_bridge"
LINE_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_RESET = "\033[0m"
_LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[35m",
}
_LEVEL_MARKERS = {
    logging.WARNING: "⚠️ ",
    logging.ERROR: "⛔ ",
    logging.CRITICAL: "⛔ ",
}

# Third party loggers that are only interesting while debugging
_NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "aiosqlite")


class ZonedFormatter(logging.Formatter):
    """Formatter rendering record times in a fixed pytz zone and prefixing
    warnings and errors with a marker."""

    def __init__(self, tz_name: str, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        moment = datetime.fromtimestamp(record.created, self.tz)
        if datefmt:
            return moment.strftime(datefmt)
        return moment.isoformat()

    def format(self, record):
        marker = _LEVEL_MARKERS.get(record.levelno, "")
        if not marker:
            return super().format(record)
        # Work on a copy so the file handler sees the same untouched record
        marked = logging.makeLogRecord(record.__dict__)
        marked.msg = marker + record.getMessage()
        marked.args = ()
        return super().format(marked)


class LevelColorFormatter(ZonedFormatter):
    """Console variant of :class:`ZonedFormatter` that wraps each line in the
    ANSI color of its level."""

    def format(self, record):
        line = super().format(record)
        color = _LEVEL_COLORS.get(record.levelno)
        return f"{color}{line}{_RESET}" if color else line


def resolve_level(level_name: str | None) -> int:
    """Map a ``LOG_LEVEL`` value to a logging level, falling back to INFO."""
    level = logging.getLevelName((level_name or "info").upper())
    return level if isinstance(level, int) else logging.INFO


def build_logging_config(level: int, tz_name: str, log_file: str | None) -> dict[str, Any]:
    """Build the ``dictConfig`` mapping. Without ``log_file`` only the console
    handler is installed."""
    handlers: dict[str, dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "colored",
            "level": level,
            "stream": "ext://sys.stdout",
        },
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.FileHandler",
            "formatter": "plain",
            "level": level,
            "filename": log_file,
            "encoding": "utf-8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {"()": ZonedFormatter, "format": LINE_FORMAT, "datefmt": DATE_FORMAT, "tz_name": tz_name},
            "colored": {"()": LevelColorFormatter, "format": LINE_FORMAT, "datefmt": DATE_FORMAT, "tz_name": tz_name},
        },
        "handlers": handlers,
        "root": {"handlers": list(handlers), "level": level},
    }


def setup_logging() -> logging.Logger:
    """Configure the root logger from the environment and return the
    application logger.

    ``LOG_LEVEL`` (default info), ``TIMEZONE`` (default Europe/Berlin) and
    ``LOG_TO_FILE`` (default true) are honoured. The log file is written to
    ``<ROOT_DIR>/logs/knowledge_bridge.log``.
    """
    level = resolve_level(os.getenv("LOG_LEVEL"))
    tz_name = os.getenv("TIMEZONE", "Europe/Berlin")

    log_file = None
    if os.getenv("LOG_TO_FILE", "true").lower() in ("true", "1", "yes"):
        log_dir = os.path.join(os.environ.get("ROOT_DIR", os.getcwd()), "logs")
        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(log_dir, f"{LOGGER_NAME}.log")

    logging.config.dictConfig(build_logging_config(level, tz_name, log_file))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level if level == logging.DEBUG else logging.WARNING)

    return logging.getLogger(LOGGER_NAME)
