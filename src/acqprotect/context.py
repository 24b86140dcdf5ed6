"""Caller context extraction from Okapi request headers.

Authentication happens upstream; this module only reads the already-verified
user id and the granted permission list the platform attaches to the request.
"""

from __future__ import annotations

import json
from typing import Mapping

from pydantic import ValidationError

from .exceptions import InvalidRequestError
from .gateway import OKAPI_USERID_HEADER
from .models import CallerContext

OKAPI_PERMISSIONS_HEADER = "x-okapi-permissions"


def parse_permissions(raw: str | None) -> frozenset[str]:
    """Parse the JSON array carried in ``x-okapi-permissions``.

    A missing or blank header grants nothing.

    Example::

        parse_permissions('["organizations.item.get"]')
        # frozenset({"organizations.item.get"})
    """
    if raw is None or not raw.strip():
        return frozenset()
    try:
        values = json.loads(raw)
    except ValueError as e:
        raise InvalidRequestError(f"Malformed {OKAPI_PERMISSIONS_HEADER} header") from e
    if not isinstance(values, list):
        raise InvalidRequestError(f"{OKAPI_PERMISSIONS_HEADER} header must be a JSON array")
    return frozenset(str(value) for value in values)


def caller_from_headers(headers: Mapping[str, str]) -> CallerContext:
    """Build a CallerContext from request headers (case-insensitive names)."""
    normalized = {key.lower(): value for key, value in headers.items()}
    user_id = (normalized.get(OKAPI_USERID_HEADER) or "").strip()
    if not user_id:
        raise InvalidRequestError(f"Missing {OKAPI_USERID_HEADER} header")
    permissions = parse_permissions(normalized.get(OKAPI_PERMISSIONS_HEADER))
    try:
        return CallerContext(user_id=user_id, granted_permissions=permissions)
    except ValidationError as e:
        raise InvalidRequestError(f"Malformed {OKAPI_USERID_HEADER} header") from e


__all__ = [
    "OKAPI_PERMISSIONS_HEADER",
    "caller_from_headers",
    "parse_permissions",
]
