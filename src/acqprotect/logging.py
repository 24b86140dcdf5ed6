"""Logging utilities for acqprotect.

This module provides:
- Logging configuration from ProtectionConfig
- Safe, length-bounded previews for id lists and CQL queries
- A formatter with JSON or plain-text output
- A logger adapter that stamps the caller's user id on every record
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from .config import LogLevel, ProtectionConfig
from .models import CallerContext


def safe_preview(value: Any, limit: int = 240) -> str:
    """Create a safe, length-bounded preview of a value for logging.

    Converts any value to a single-line string, normalizes whitespace and
    truncates to ``limit`` characters.

    Args:
        value: The value to preview (any type)
        limit: Maximum length of the preview (default: 240)

    Returns:
        A truncated string representation
    """
    if value is None:
        return ""

    if isinstance(value, str):
        s = value
    elif isinstance(value, (list, tuple, set, frozenset)):
        s = ", ".join(str(item) for item in value)
    elif isinstance(value, dict):
        try:
            s = json.dumps(value, default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            s = str(value)
    else:
        s = str(value)

    s = " ".join(s.split())

    if len(s) > limit:
        return s[: limit - 1] + "…"

    return s


_RESERVED_ATTRS = frozenset(
    {
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "message", "pathname", "process", "processName", "relativeCreated",
        "thread", "threadName", "exc_info", "exc_text", "stack_info",
        "taskName", "user_id",
    }
)


class AcqProtectFormatter(logging.Formatter):
    """Formatter that includes the caller's user id and optional JSON output."""

    def __init__(
        self,
        json_format: bool = False,
        service_name: Optional[str] = None,
        *args: Any,
        **kwargs: Any,
    ):
        super().__init__(*args, **kwargs)
        self.json_format = json_format
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record."""
        user_id = getattr(record, "user_id", None)

        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.service_name:
            log_data["service"] = self.service_name
        if user_id:
            log_data["user_id"] = user_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = safe_preview(value)

        if self.json_format:
            return json.dumps(log_data, default=str, ensure_ascii=False)

        parts = [
            f"[{log_data['timestamp']}]",
            f"{log_data['level']}",
            f"{log_data['logger']}",
        ]
        if user_id:
            parts.append(f"user_id={user_id}")
        parts.append(f": {log_data['message']}")
        text = " ".join(parts)
        if "exception" in log_data:
            text += "\n" + log_data["exception"]
        return text


class CallerLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds the caller's user id to log records.

    Usage:
        logger = get_caller_logger(__name__, caller)
        logger.info("Checking restrictions")
    """

    def __init__(self, logger: logging.Logger, user_id: Optional[str] = None):
        super().__init__(logger, {})
        self.user_id = user_id

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        user_id = kwargs.pop("user_id", self.user_id)
        extra = kwargs.get("extra") or {}
        if user_id:
            extra["user_id"] = user_id
        kwargs["extra"] = extra
        return msg, kwargs


def setup_logging(
    config: Optional[ProtectionConfig] = None,
    json_format: Optional[bool] = None,
) -> None:
    """Configure the root logger for a service embedding acqprotect.

    Args:
        config: ProtectionConfig instance (if None, loads from environment)
        json_format: Override ``config.log_json``
    """
    if config is None:
        from .config import load_config_from_env

        config = load_config_from_env()

    level_map = {
        LogLevel.DEBUG: logging.DEBUG,
        LogLevel.INFO: logging.INFO,
        LogLevel.WARNING: logging.WARNING,
        LogLevel.ERROR: logging.ERROR,
        LogLevel.CRITICAL: logging.CRITICAL,
    }
    log_level = level_map.get(config.log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        AcqProtectFormatter(
            json_format=config.log_json if json_format is None else json_format,
            service_name=config.service_name,
        )
    )
    root_logger.addHandler(console_handler)


def get_caller_logger(name: str, caller: Optional[CallerContext] = None) -> CallerLoggerAdapter:
    """Get a logger adapter bound to the given caller.

    Example:
        logger = get_caller_logger(__name__, caller)
        logger.warning("User is not a member of protecting units")
    """
    logger = logging.getLogger(name)
    return CallerLoggerAdapter(logger, user_id=caller.user_id if caller else None)


__all__ = [
    "AcqProtectFormatter",
    "CallerLoggerAdapter",
    "get_caller_logger",
    "safe_preview",
    "setup_logging",
]
