# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Structured JSON logger for gbemu-release.

Every entry is one JSON line on stderr:

  {"ts": "2026-...", "level": "INFO", "module": "gbemu_release.release.cleanup.cleaner",
   "msg": "Deleted tag", "tag": "nightly-20260101"}

stdout belongs to what CI reads back (`key=value` lines appended to
$GITHUB_OUTPUT and the validation verdict), so log lines never go there.
Loggers don't propagate to the root logger, which PyGithub configures in
debug mode.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

_RECORD_ATTRS: frozenset[str] = frozenset(vars(logging.makeLogRecord({}))) | {"message", "taskName"}

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class JsonFormatter(logging.Formatter):
    """ts, level, module and msg, then the caller's extras, then "exc" for exc_info."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "ts": datetime.now(tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.name,
            "msg": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS and not key.startswith("_"):
                entry[key] = value

        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def _resolve_log_level(level_name: str) -> int:
    upper = level_name.upper()
    if upper not in _VALID_LOG_LEVELS:
        raise ValueError(f"Invalid log level '{level_name}'. Must be one of: {', '.join(_VALID_LOG_LEVELS)}")
    return getattr(logging, upper)


def get_logger(
    name: str,
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Create (or reconfigure) a structured JSON logger.

    Modules call this at import time with __name__. The CLI calls it again per
    command with the level and --log-file from the command line; handlers are
    then re-leveled and a file handler is added once per path.

    Raises:
        ValueError: If log_level isn't a known level name.
    """
    logger = logging.getLogger(name)
    level = _resolve_log_level(log_level)
    logger.setLevel(level)

    if not logger.handlers:
        stream_handler = logging.StreamHandler(stream=sys.stderr)
        stream_handler.setFormatter(JsonFormatter())
        logger.addHandler(stream_handler)
        logger.propagate = False

    for handler in logger.handlers:
        handler.setLevel(level)

    if log_file is not None and not _has_file_handler(logger, log_file):
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(JsonFormatter())
        logger.addHandler(file_handler)

    return logger


def _has_file_handler(logger: logging.Logger, log_file: Path) -> bool:
    target = os.path.abspath(log_file)
    return any(
        isinstance(handler, logging.FileHandler) and handler.baseFilename == target
        for handler in logger.handlers
    )
