"""Unified exception hierarchy for acqprotect.

All errors inherit from AcqProtectError. This module provides:
- Base exception hierarchy with stable error codes
- ErrorRegistry for protocol mapping
- HTTP status mapping and error-body rendering

Usage in request handlers:
    from acqprotect.exceptions import AcqProtectError, get_http_status

    try:
        await protection.check_operations_restrictions(unit_ids, {READ}, caller)
    except AcqProtectError as e:
        return JSONResponse(e.to_error(), status_code=get_http_status(e))
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar, cast

__all__ = [
    # Base hierarchy
    "AcqProtectError",
    "ProtectionInternalError",
    "ConfigurationError",
    "InvalidRequestError",
    "UnitsNotFoundError",
    "UserHasNoPermissionError",
    "UserHasNoAcqPermissionError",
    "UpstreamServiceError",
    # Registry
    "ErrorRegistry",
    "error_registry",
    "register_error",
    # HTTP helpers
    "get_http_status",
]


# ---- Exception Hierarchy ----------------------------------------------------


class AcqProtectError(Exception):
    """Base exception for acqprotect.

    Attributes:
        code: Stable error code string for protocol mapping (e.g. "userHasNoPermission").
        message: Human-readable error description.
        details: Additional context as keyword arguments.
    """

    code: str = "genericError"
    message: str = "Generic error"

    def __init__(self, message: str | None = None, code: str | None = None, **kwargs: Any) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = kwargs
        super().__init__(self.message)

    def to_error(self) -> dict[str, Any]:
        """Render the error as a response body entry.

        Details become ``parameters`` key/value pairs; list values are kept as lists.
        """
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            error["parameters"] = [{"key": key, "value": value} for key, value in self.details.items()]
        return error


class ProtectionInternalError(AcqProtectError):
    """Invariant violation inside the protection pipeline."""

    code: str = "internalError"
    message: str = "Internal protection error"


class ConfigurationError(AcqProtectError):
    """Invalid or missing configuration."""

    code: str = "configurationError"
    message: str = "Invalid configuration"


class InvalidRequestError(AcqProtectError):
    """Caller context could not be read from the request."""

    code: str = "invalidRequest"
    message: str = "Invalid request"


class UnitsNotFoundError(AcqProtectError):
    """Referenced acquisition units do not exist or are deleted.

    Distinct from "exists but restricted". ``unit_ids`` lists every offender.
    """

    code: str = "organizationAcqUnitsNotFound"
    message: str = "Acquisitions units assigned to organization cannot be found"

    def __init__(self, unit_ids: list[str] | tuple[str, ...], message: str | None = None) -> None:
        self.unit_ids = tuple(unit_ids)
        super().__init__(message, acqUnitIds=list(self.unit_ids))


class UserHasNoPermissionError(AcqProtectError):
    """Caller is not a member of any protecting unit."""

    code: str = "userHasNoPermission"
    message: str = "User does not have permissions - operation is restricted"


class UserHasNoAcqPermissionError(AcqProtectError):
    """Caller may not change acquisition unit assignments."""

    code: str = "userHasNoAcqUnitsPermission"
    message: str = "User does not have permissions to manage acquisition units assignments - operation is restricted"


class UpstreamServiceError(AcqProtectError):
    """Unit storage call failed (transport error or non-2xx response)."""

    code: str = "upstreamError"
    message: str = "Acquisition units storage request failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        body: str | None = None,
        **kwargs: Any,
    ) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message, **kwargs)


# ---- Error Registry for Protocol Mapping ------------------------------------

_E = TypeVar("_E", bound=type[AcqProtectError])


class ErrorRegistry:
    """Registry for mapping internal errors to external protocol codes."""

    def __init__(self) -> None:
        self._errors: dict[str, type[AcqProtectError]] = {}

    def register(self, code: str, error_cls: type[AcqProtectError]) -> None:
        self._errors[code] = error_cls

    def get(self, code: str) -> type[AcqProtectError] | None:
        return self._errors.get(code)

    def all(self) -> dict[str, type[AcqProtectError]]:
        return dict(self._errors)


error_registry = ErrorRegistry()


def register_error(code: str) -> Callable[[_E], _E]:
    """Decorator to register a custom error type.

    Usage:
        @register_error("bankingInformationNotFound")
        class BankingInformationNotFound(AcqProtectError):
            code = "bankingInformationNotFound"
    """

    def decorator(cls: _E) -> _E:
        error_registry.register(code, cls)
        return cls

    return cast(Callable[[_E], _E], decorator)


# Register base errors
error_registry.register("genericError", AcqProtectError)
error_registry.register("internalError", ProtectionInternalError)
error_registry.register("configurationError", ConfigurationError)
error_registry.register("invalidRequest", InvalidRequestError)
error_registry.register("organizationAcqUnitsNotFound", UnitsNotFoundError)
error_registry.register("userHasNoPermission", UserHasNoPermissionError)
error_registry.register("userHasNoAcqUnitsPermission", UserHasNoAcqPermissionError)
error_registry.register("upstreamError", UpstreamServiceError)


# ---- HTTP Status Mapping -----------------------------------------------------

_ERROR_TO_STATUS = {
    "invalidRequest": 400,
    "userHasNoPermission": 403,
    "userHasNoAcqUnitsPermission": 403,
    "organizationAcqUnitsNotFound": 422,
    "upstreamError": 502,
    "configurationError": 500,
    "internalError": 500,
}


def get_http_status(error: AcqProtectError) -> int:
    """Map an AcqProtectError to an HTTP status code (500 when unknown)."""
    return _ERROR_TO_STATUS.get(error.code, 500)
