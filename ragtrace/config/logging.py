"""Logging setup for the API server and the CLI.

Application modules log through ``logging.getLogger(__name__)``; everything
lives under the ``ragtrace`` tree, which is the only logger configured here.
Pipeline log calls attach run fields (``stage``, ``error_code``, ``run_id``,
``duration_ms``) through ``extra=``; the JSON formatter lifts them into the
entry so runs can be filtered in a log aggregator.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Any

ROOT_LOGGER = "ragtrace"

RUN_FIELDS = ("stage", "error_code", "run_id", "duration_ms")

# SDK and transport loggers that are chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "urllib3", "google_genai", "qdrant_client")

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s | %(message)s"


class JSONExceptionFormatter(logging.Formatter):
    """Formats each record as one JSON line, exceptions included."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": {
                "file": record.filename,
                "function": record.funcName,
                "line": record.lineno,
            },
        }

        run = {name: getattr(record, name) for name in RUN_FIELDS if hasattr(record, name)}
        if run:
            entry["run"] = run

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
    json_format: bool = False,
) -> logging.Logger:
    """Configure the ``ragtrace`` logger tree.

    Output goes to stderr so the CLI's rendered trace on stdout stays clean.
    Calling this again replaces the previous handlers.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional file that receives the same records.
        json_format: Emit one JSON object per line instead of text.

    Returns:
        The ``ragtrace`` logger.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.handlers.clear()

    formatter: logging.Formatter
    if json_format:
        formatter = JSONExceptionFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, logger.level))

    return logger
