"""
Structured Logging Utilities

This module centralizes logging setup for the request adapter. It provides
helpers for masking credentials before they reach a log record, emitting JSON
log records, and attaching managed handlers to the package logger without
duplicating them across repeated configuration calls.
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from datetime import datetime, timezone
from typing import Dict, Optional

from .settings import LoggingSettings

PACKAGE_LOGGER_NAME = "ClientRuntime.HttpAdapter"

_SENSITIVE_KEYS = {
    "authorization",
    "proxy-authorization",
    "api_key",
    "apikey",
    "token",
    "access_token",
    "secret",
    "password",
    "claims",
    "cookie",
    "set-cookie",
}


def mask_sensitive_data(payload: Dict[str, object]) -> Dict[str, object]:
    """Remove secrets from structured payloads prior to logging.

    Args:
        payload: Arbitrary key-value pairs that may contain credentials,
            bearer tokens or claims challenges.

    Returns:
        Copy of the payload where common secret fields are replaced with
        `***masked***`. Nested mappings are masked recursively.

    Examples:
        >>> mask_sensitive_data({"Authorization": "Bearer x", "status": 200})
        {'Authorization': '***masked***', 'status': 200}
    """
    masked: Dict[str, object] = {}
    for key, value in payload.items():
        lower = str(key).lower()
        if lower in _SENSITIVE_KEYS:
            masked[key] = "***masked***"
        elif isinstance(value, dict):
            masked[key] = mask_sensitive_data(value)
        elif isinstance(value, str) and value.lower().startswith("bearer "):
            masked[key] = "***masked***"
        else:
            masked[key] = value
    return masked


def generate_correlation_id() -> str:
    """Create a short-lived identifier that links the log entries of one call.

    Examples:
        >>> len(generate_correlation_id())
        12
    """
    return uuid.uuid4().hex[:12]


class JSONFormatter(logging.Formatter):
    """Formatter emitting JSON structured logs.

    Fields passed through ``extra=`` on the logging call are merged into the
    record, after masking.
    """

    _RESERVED = set(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:
        now = datetime.now(timezone.utc)
        log_obj: Dict[str, object] = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in self._RESERVED and not key.startswith("_"):
                log_obj[key] = value
        if record.exc_info:
            log_obj["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(mask_sensitive_data(log_obj), default=str)


def setup_logging(config: LoggingSettings, stream: Optional[object] = None) -> logging.Logger:
    """Configure handlers for the adapter's package logger.

    Args:
        config: Logging settings containing level and output format.
        stream: Optional stream override (defaults to ``sys.stderr``).

    Returns:
        Configured logger instance scoped to the adapter package.

    Examples:
        >>> logger = setup_logging(LoggingSettings(level="DEBUG"))
        >>> logger.name
        'ClientRuntime.HttpAdapter'
    """
    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    logger.setLevel(config.level_int())

    for handler in list(logger.handlers):
        if getattr(handler, "_clientruntime_managed", False):
            logger.removeHandler(handler)
            handler.close()

    handler = logging.StreamHandler(stream or sys.stderr)
    if config.emit_json_logs:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    handler._clientruntime_managed = True  # type: ignore[attr-defined]
    logger.addHandler(handler)

    logger.propagate = True
    return logger


__all__ = [
    "PACKAGE_LOGGER_NAME",
    "JSONFormatter",
    "setup_logging",
    "mask_sensitive_data",
    "generate_correlation_id",
]
