"""Centralised logging setup.

Events are short snake_case messages; everything else a call site wants to
record goes in ``extra`` and is written out by both formatters, after the
redaction filter has had a chance to mask user text.
"""

import json
import logging
import sys
from logging import Logger, LoggerAdapter
from typing import Any, Dict, MutableMapping, Tuple

from core import config

# Record attributes that may carry user text.
REDACTED_FIELDS = ("text", "query", "source_path")

# Attributes every LogRecord has; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "op_id"}


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


class _DefaultFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "op_id"):
            record.op_id = "-"
        line = super().format(record)
        fields = _extra_fields(record)
        if not fields:
            return line
        pairs = " ".join(f"{key}={value}" for key, value in fields.items())
        # Keep tracebacks below the event line.
        head, sep, tail = line.partition("\n")
        return f"{head} {pairs}{sep}{tail}"


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "op_id": getattr(record, "op_id", "-"),
        }
        payload.update(_extra_fields(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class _RedactFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if config.LOG_REDACT_TEXT:
            for field in REDACTED_FIELDS:
                if hasattr(record, field):
                    setattr(record, field, "[REDACTED]")
        return True


class _OperationAdapter(LoggerAdapter):
    """Adds the operation id while keeping each call's own ``extra``."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def _configure_root() -> None:
    if logging.getLogger().handlers:
        return
    level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    fmt = "%(asctime)s %(levelname)s [%(name)s] [op=%(op_id)s] %(message)s"
    formatter = (
        _JsonFormatter()
        if config.LOG_FORMAT.lower() == "json"
        else _DefaultFormatter(fmt=fmt)
    )
    redact_filter = _RedactFilter()

    # stdout is reserved for command output
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    handler.addFilter(redact_filter)
    handlers = [handler]

    if config.LOG_FILE_PATH:
        file_handler = logging.FileHandler(config.LOG_FILE_PATH)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(redact_filter)
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers)


def get_logger(name: str, op_id: str | None = None) -> Logger | LoggerAdapter:
    """Return a logger configured with optional operation correlation id."""
    _configure_root()
    base = logging.getLogger(name)
    if op_id:
        return _OperationAdapter(base, extra={"op_id": op_id})
    return base
