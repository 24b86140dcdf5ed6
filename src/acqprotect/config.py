"""Configuration contract for acqprotect.

Pydantic-validated settings shared by the protection engine, the visibility
clause builder and the HTTP unit gateway. Direct os.environ/os.getenv usage
is limited to ``load_config_from_env()``.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

# Integer.MAX_VALUE of the storage API: "give me everything" page size.
MAX_PAGE_SIZE = 2147483647


class AcqDesiredPermissions(str, Enum):
    """Permissions the engine looks for in the caller's granted set.

    Matched by exact string equality. ``ProtectionConfig.manage_permission``
    defaults to ``MANAGE``.
    """

    MANAGE = "organizations.acquisitions-units-assignments.manage"

    @property
    def permission(self) -> str:
        return self.value

    @classmethod
    def values(cls) -> tuple[str, ...]:
        return tuple(member.value for member in cls)


MANAGE_PERMISSION = AcqDesiredPermissions.MANAGE.value


class LogLevel(str, Enum):
    """Standard log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ProtectionConfig(BaseModel):
    """Settings for unit-based record protection.

    Environment variables are read by :func:`load_config_from_env` only.
    """

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Use JSON log format (default: plain text)",
    )

    # Unit storage
    okapi_url: Optional[str] = Field(
        default=None,
        description="Fallback storage base URL when the request carries no x-okapi-url header",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for a single unit storage request",
    )
    max_page_size: int = Field(
        default=MAX_PAGE_SIZE,
        ge=1,
        description="Page size used whenever a complete unit or membership set is required",
    )

    # Policy
    manage_permission: str = Field(
        default=AcqDesiredPermissions.MANAGE.value,
        min_length=1,
        description="Permission required to change a record's acquisition unit assignment",
    )

    # Service identification
    service_name: Optional[str] = Field(
        default=None,
        description="Service name for log records",
    )

    @field_validator("okapi_url")
    @classmethod
    def validate_okapi_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate storage URL format."""
        if v is None:
            return v
        if not v.startswith(("http://", "https://")):
            raise ValueError("Okapi URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Convert string to LogLevel enum."""
        if isinstance(v, LogLevel):
            return v
        if isinstance(v, str):
            try:
                return LogLevel[v.upper()]
            except KeyError:
                raise ValueError(f"Invalid log level: {v}. Must be one of {[e.value for e in LogLevel]}")
        raise ValueError(f"Log level must be string or LogLevel enum, got {type(v)}")

    model_config = {
        "extra": "forbid",
    }


def load_config_from_env() -> ProtectionConfig:
    """Load configuration from environment variables.

    Environment variables:
    - LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - LOG_JSON: Use JSON log format (true/false, default: false)
    - OKAPI_URL: Fallback unit storage base URL
    - REQUEST_TIMEOUT_SECONDS: Storage request timeout
    - MAX_PAGE_SIZE: Page size for complete-set fetches
    - ACQ_MANAGE_PERMISSION: Unit assignment management permission
    - SERVICE_NAME: Service name for logs

    Returns:
        ProtectionConfig instance with values from environment or defaults.
    """
    import os

    return ProtectionConfig(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=os.getenv("LOG_JSON", "false").lower() in ("true", "1", "yes"),
        okapi_url=os.getenv("OKAPI_URL") or None,
        request_timeout_seconds=float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30")),
        max_page_size=int(os.getenv("MAX_PAGE_SIZE", str(MAX_PAGE_SIZE))),
        manage_permission=os.getenv("ACQ_MANAGE_PERMISSION", MANAGE_PERMISSION),
        service_name=os.getenv("SERVICE_NAME"),
    )


__all__ = [
    "AcqDesiredPermissions",
    "LogLevel",
    "MANAGE_PERMISSION",
    "MAX_PAGE_SIZE",
    "ProtectionConfig",
    "load_config_from_env",
]
