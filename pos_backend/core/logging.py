"""
Process-wide logging setup.

Every module logs through ``logging.getLogger(__name__)``; this installs a
single stream handler on the package logger so uvicorn's own handlers are
left untouched.
"""
import logging
import sys

from pos_backend.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Keys whose values never reach a log line
SENSITIVE_FIELDS = {"password", "confirm_password", "hashed_password", "otp", "token", "access_token", "secret"}


def configure_logging(level: str | None = None) -> logging.Logger:
    logger = logging.getLogger("pos_backend")
    logger.setLevel((level or settings.LOG_LEVEL).upper())

    if not any(getattr(h, "_pos_backend", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._pos_backend = True
        logger.addHandler(handler)

    logger.propagate = False
    return logger


def sanitize_dict(data: dict) -> dict:
    """Copy of ``data`` with sensitive values redacted, for debug logging of payloads."""
    sanitized = {}
    for key, value in data.items():
        if key.lower() in SENSITIVE_FIELDS:
            sanitized[key] = "[REDACTED]"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_dict(value)
        else:
            sanitized[key] = value
    return sanitized
