"""
Logging Configuration — Diagnostics on stderr, progress on stdout.

``ship`` owns stdout for its overwritten progress line and result lines, so
every log record goes to stderr. Records about one mirror request carry
``request_id`` / ``image`` / ``run_id`` context, which both formatters
surface.

## Environment Variables

- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
- LOG_FORMAT: json, text (default: text)

## Usage

    from image_shipper.logging_config import request_logger, setup_logging

    setup_logging()  # once, from the CLI group

    log = request_logger(logger, request)
    log.warning("Status check failed")   # tagged with request_id and image
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, MutableMapping, Tuple

CONTEXT_FIELDS = ("request_id", "image", "run_id")

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

QUIET_LOGGERS = ("httpx", "httpcore")


def record_context(record: logging.LogRecord) -> Dict[str, Any]:
    """The request context attached to ``record``, in CONTEXT_FIELDS order."""
    return {
        name: getattr(record, name)
        for name in CONTEXT_FIELDS
        if getattr(record, name, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line.

    {"ts": "...", "level": "...", "logger": "...", "message": "...",
     "request_id": "...", "image": "..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(record_context(record))

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry)


class HumanFormatter(logging.Formatter):
    """
    Terminal-friendly lines, coloured when stderr is a TTY.

    12:34:56 WARNING [poller         ] Status check 3 failed (request_id=1772366400)
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def _level(self, name: str) -> str:
        if not sys.stderr.isatty():
            return f"{name:7}"
        return f"{self.COLORS.get(name, '')}{name:7}{self.RESET}"

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        source = record.name.rsplit(".", 1)[-1][:15]

        message = record.getMessage()
        context = record_context(record)
        if context:
            pairs = ", ".join(f"{k}={v}" for k, v in context.items())
            message = f"{message} ({pairs})"

        line = f"{stamp} {self._level(record.levelname)} [{source:15}] {message}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class RequestLogger(logging.LoggerAdapter):
    """Logger adapter that stamps every record with one request's context."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def request_logger(logger: logging.Logger, request: Any) -> RequestLogger:
    """Wrap ``logger`` so records carry ``request``'s id and source image."""
    return RequestLogger(logger, {"request_id": request.id, "image": request.source_image})


def setup_logging(
    level: str | None = None,
    format_type: str | None = None,
) -> None:
    """
    Route all logging to stderr.

    Args:
        level: DEBUG, INFO, WARNING or ERROR. Falls back to LOG_LEVEL, then
               INFO; unknown names also fall back to INFO.
        format_type: json or text. Falls back to LOG_FORMAT, then text.
    """
    log_level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    if log_level not in LEVELS:
        log_level = "INFO"
    log_format = (format_type or os.environ.get("LOG_FORMAT", "text")).lower()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if log_format == "json" else HumanFormatter())
    handler.setLevel(log_level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(f"Logging configured: level={log_level}, format={log_format}")
