# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Structured JSON logger for veve.

The engine never prints. Everything it has to say about scheduling, sandbox
state transitions and timings goes through loggers created here, one JSON
object per line:

  {"ts": "2026-...", "level": "INFO", "module": "veve.engine.pool.core",
   "msg": "Pool finished", "files": 12, "exit_code": 0}

Output written by the test files themselves is a different thing entirely.
That goes to the per-sandbox Console and gets replayed after the run, so it
never shows up in these logs.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

# LogRecord attributes that are bookkeeping, not caller context.
_STANDARD_ATTRS = frozenset({
    "name",
    "msg",
    "args",
    "created",
    "relativeCreated",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "pathname",
    "filename",
    "module",
    "levelno",
    "levelname",
    "processName",
    "process",
    "threadName",
    "thread",
    "message",
    "msecs",
    "taskName",
})

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class JsonFormatter(logging.Formatter):
    """
    Formats log records as single-line JSON objects.

    Mandatory fields are ts, level, module and msg. Anything passed through
    `extra=` is merged in as additional context (file paths, durations,
    sandbox states). When the record carries exception info, the formatted
    traceback goes under "exc".
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "ts": datetime.now(tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.name,
            "msg": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                entry[key] = value

        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def _resolve_log_level(level_name: str) -> int:
    """Turn a level name string into the corresponding logging constant."""
    upper = level_name.upper()
    if upper not in _VALID_LOG_LEVELS:
        raise ValueError(
            f"Invalid log level '{level_name}'. Must be one of: {', '.join(sorted(_VALID_LOG_LEVELS))}"
        )
    return getattr(logging, upper)


def get_logger(
    name: str,
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Create (or fetch) a structured JSON logger.

    Every module calls this once at import time with its own __name__. Calling
    it again for the same name only adjusts the level, so the CLI can turn up
    verbosity after the engine modules have already been imported.

    Args:
        name: Logger name, typically __name__ of the calling module.
        log_level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL.
        log_file: Optional path to a log file. If provided, logs go to both
                  stderr and the file.

    Returns:
        A configured logging.Logger that outputs structured JSON.
    """
    logger = logging.getLogger(name)
    level = _resolve_log_level(log_level)
    logger.setLevel(level)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    formatter = JsonFormatter()

    # stderr, so replayed test output on stdout stays clean
    stream_handler = logging.StreamHandler(stream=sys.stderr)
    stream_handler.setLevel(level)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False

    return logger


def set_package_level(
    log_level: str,
    prefix: str = "veve",
    log_file: Optional[Path] = None,
) -> None:
    """
    Apply a level (and optionally a log file) to every logger under `prefix`.

    Engine modules create their loggers at import time with the default
    level; the CLI calls this once the user's --log-level and config are
    known. A file handler is only added to loggers that don't already write
    to that file.
    """
    level = _resolve_log_level(log_level)
    target = str(log_file.resolve()) if log_file is not None else None
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)

    for name in list(logging.Logger.manager.loggerDict):
        if not (name == prefix or name.startswith(prefix + ".")):
            continue
        logger = logging.getLogger(name)
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)

        if target is None:
            continue
        has_file = any(
            isinstance(handler, logging.FileHandler) and handler.baseFilename == target
            for handler in logger.handlers
        )
        if not has_file:
            file_handler = logging.FileHandler(target, encoding="utf-8")
            file_handler.setLevel(level)
            file_handler.setFormatter(JsonFormatter())
            logger.addHandler(file_handler)
