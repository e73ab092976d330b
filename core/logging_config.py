"""Structured logging configuration with correlation fields."""
import logging
import json
import sys
import uuid
from datetime import datetime
from typing import Optional, Dict, Any
from contextvars import ContextVar

# Context variables for log correlation
current_request_id: ContextVar[str] = ContextVar("request_id", default="")
current_auction: ContextVar[str] = ContextVar("auction", default="")
current_bidder: ContextVar[str] = ContextVar("bidder", default="")

# Field name -> (context var, short label for text logs), in output order
CONTEXT_FIELDS = {
    "request_id": (current_request_id, "req"),
    "auction": (current_auction, "auction"),
    "bidder": (current_bidder, "bidder"),
}

# Third-party loggers that are chatty at INFO (discovery documents, HTTP retries)
NOISY_LOGGERS = ("googleapiclient", "google.auth", "urllib3")


def generate_request_id() -> str:
    """Generate a short request ID for log correlation."""
    return uuid.uuid4().hex[:8]


def context_fields() -> Dict[str, str]:
    """Correlation fields currently set, by field name."""
    return {name: var.get() for name, (var, _) in CONTEXT_FIELDS.items() if var.get()}


class JSONFormatter(logging.Formatter):
    """One JSON object per line; correlation fields sit beside the message."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(context_fields())

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter: `... logger [req=..., auction=...]: message`."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.utcnow().strftime("%Y-%m-%d %H:%M:%S")

        fields = context_fields()
        ctx_parts = [f"{CONTEXT_FIELDS[name][1]}={value}" for name, value in fields.items()]
        ctx_str = f" [{', '.join(ctx_parts)}]" if ctx_parts else ""

        msg = f"{timestamp} {record.levelname:8s} {record.name}{ctx_str}: {record.getMessage()}"

        if record.exc_info:
            msg += "\n" + self.formatException(record.exc_info)

        return msg


def setup_logging(
    level: str = "INFO",
    format_type: str = "text",
    logger_name: Optional[str] = None,
) -> logging.Logger:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: "json" for structured logs, "text" for human-readable
        logger_name: Specific logger name, or None for root logger

    Returns:
        Configured logger instance
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger = logging.getLogger(logger_name)
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter() if format_type.lower() == "json" else TextFormatter())
    logger.addHandler(handler)

    # Named loggers stay local; the root logger is the sink for everything else
    if logger_name:
        logger.propagate = False

    # Google client noise only shows up when debugging
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING)

    return logger


class LogContext:
    """Set correlation fields for the duration of a block, restoring the previous values on exit."""

    def __init__(self, **fields: Optional[str]):
        unknown = set(fields) - set(CONTEXT_FIELDS)
        if unknown:
            raise TypeError(f"Unknown log context field(s): {', '.join(sorted(unknown))}")
        self.fields = {name: value for name, value in fields.items() if value}
        self._tokens = []

    def __enter__(self):
        for name, value in self.fields.items():
            var = CONTEXT_FIELDS[name][0]
            self._tokens.append((var, var.set(value)))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens = []
        return False
