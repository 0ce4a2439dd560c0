"""Logging setup shared by the client, controllers and CLI."""
from __future__ import annotations

import logging
import sys
from typing import Any

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

SENSITIVE_KEYS = frozenset(
    {"userCognitoId", "adminCognitoId", "email", "phoneNumber", "password", "token", "Authorization"}
)


def redact(data: Any) -> Any:
    """Return a copy of ``data`` with sensitive keys masked."""

    if isinstance(data, dict):
        return {
            key: "[REDACTED]" if key in SENSITIVE_KEYS else redact(value)
            for key, value in data.items()
        }
    if isinstance(data, (list, tuple)):
        return [redact(item) for item in data]
    return data


class RedactingFilter(logging.Filter):
    """Mask sensitive values passed as mapping arguments to a log call."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.args, dict):
            record.args = redact(record.args)
        elif isinstance(record.args, tuple):
            record.args = tuple(redact(arg) for arg in record.args)
        return True


def setup_logging(log_level: str = "INFO") -> None:
    """Configure the root logger with a console handler."""

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    console_handler.addFilter(RedactingFilter())
    root_logger.addHandler(console_handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


__all__ = ["setup_logging", "redact", "RedactingFilter"]
