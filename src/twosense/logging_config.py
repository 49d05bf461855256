"""Logging setup for the ``twosense`` logger tree.

Log lines go to stderr so stdout stays free for the JSON lines the CLI
emits. JSON output is the default; TWOSENSE_LOG_FORMAT=text switches to a
plain format for local runs.
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Optional

from .models import utc_now_iso

ROOT_LOGGER = "twosense"

REDACTED = "[REDACTED]"

# Matched case-insensitively against extra keys, including keys of nested dicts
SENSITIVE_KEYS = {
    "access_token", "api_key", "auth", "authorization", "bearer",
    "client_secret", "credential", "password", "secret", "token",
}

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            k: REDACTED if str(k).lower() in SENSITIVE_KEYS else _redact(v)
            for k, v in value.items()
        }
    return value


class StructuredFormatter(logging.Formatter):
    """One JSON object per record.

    Keys: ``timestamp`` (record creation time, millisecond UTC with a Z
    suffix, the same layout as event cursors), ``level``, ``logger``,
    ``message``, ``context`` for extras and ``exception`` for tracebacks.
    Credential-like extras are replaced with "[REDACTED]", nested dicts
    such as request params included.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": utc_now_iso(datetime.fromtimestamp(record.created, timezone.utc)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extras = {
            k: v
            for k, v in record.__dict__.items()
            if k not in _RECORD_ATTRS and not k.startswith("_")
        }
        if extras:
            log_data["context"] = _redact(extras)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    def __init__(self):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def configure_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Attach a stderr handler to the ``twosense`` logger.

    Args:
        level: Level name; TWOSENSE_LOG_LEVEL when omitted (default INFO)
        log_format: "json" or "text"; TWOSENSE_LOG_FORMAT when omitted (default json)

    Calling it again reuses the existing handler and only swaps level and
    formatter.
    """
    level = level or os.getenv("TWOSENSE_LOG_LEVEL", "INFO")
    log_format = (log_format or os.getenv("TWOSENSE_LOG_FORMAT", "json")).lower()
    formatter = TextFormatter() if log_format == "text" else StructuredFormatter()

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not logger.handlers:
        logger.addHandler(logging.StreamHandler())
    for handler in logger.handlers:
        handler.setFormatter(formatter)

    logger.propagate = False
