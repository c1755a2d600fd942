# =============================================================================
# core/logger.py  —  Structured Logging
# =============================================================================
#
# WHY STDERR?
#   When the server runs over stdio, STDOUT *is* the MCP transport.  Any log
#   line printed there would corrupt the JSON-RPC stream.  All log output
#   therefore goes to STDERR.
#
# FORMAT:
#   One JSON object per line:
#     {"severity": "DEBUG", "message": "MoCo API request",
#      "time": "2025-01-01T12:00:00.000Z", "context": {...}}
#
#   Structured data is attached with  logger.debug(msg, extra={"context": {...}}).
#
# LEVEL CHECKS:
#   Callers that build expensive context (e.g. whole response bodies) should
#   guard with  logger.isEnabledFor(logging.DEBUG)  first.
# =============================================================================

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from core.config import get_log_level

ROOT_LOGGER_NAME = "moco"

_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def _normalize_context(context: object) -> object:
    if isinstance(context, BaseException):
        return {"name": type(context).__name__, "message": str(context)}
    if isinstance(context, dict):
        return context
    return {"value": context}


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON entries."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: dict[str, object] = {
            "severity": record.levelname,
            "message": record.getMessage(),
            "time": timestamp.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        }

        context = getattr(record, "context", None)
        if context is not None:
            entry["context"] = _normalize_context(context)
        if record.exc_info and record.exc_info[1] is not None:
            entry["error"] = _normalize_context(record.exc_info[1])

        try:
            return json.dumps(entry, default=str)
        except (TypeError, ValueError) as exc:
            return json.dumps({
                "severity": entry["severity"],
                "message": entry["message"],
                "time": entry["time"],
                "serializationError": str(exc),
            })


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Install the JSON handler on the package logger.

    Safe to call more than once; the handler is only attached the first time.

    Args:
        level: "debug", "info", "warn" or "error".  Defaults to LOG_LEVEL.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(_LEVELS.get(level or get_log_level(), logging.INFO))

    if not any(getattr(handler, "_moco_handler", False) for handler in root.handlers):
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(JsonFormatter())
        handler._moco_handler = True
        root.addHandler(handler)
        root.propagate = False

    return root


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """Return a logger under the "moco" hierarchy."""
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
