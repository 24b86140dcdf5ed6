"""Unit storage gateway.

``UnitGateway`` is the interface the protection engine consumes.
``HttpUnitGateway`` implements it against the acquisitions-units storage API,
forwarding the inbound request's Okapi headers.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from .config import ProtectionConfig
from .cql import ACTIVE_UNITS_CQL, IS_DELETED_PROP, build_query_param, combine
from .exceptions import ConfigurationError, UpstreamServiceError
from .logging import safe_preview
from .models import AcquisitionUnitCollection, AcquisitionUnitMembershipCollection

logger = logging.getLogger(__name__)

ACQUISITIONS_UNITS_PATH = "/acquisitions-units-storage/units"
ACQUISITIONS_MEMBERSHIPS_PATH = "/acquisitions-units-storage/memberships"

OKAPI_URL_HEADER = "x-okapi-url"
OKAPI_TENANT_HEADER = "x-okapi-tenant"
OKAPI_TOKEN_HEADER = "x-okapi-token"
OKAPI_USERID_HEADER = "x-okapi-user-id"
OKAPI_REQUEST_ID_HEADER = "x-okapi-request-id"

FORWARDED_HEADERS = (
    OKAPI_URL_HEADER,
    OKAPI_TENANT_HEADER,
    OKAPI_TOKEN_HEADER,
    OKAPI_USERID_HEADER,
    OKAPI_REQUEST_ID_HEADER,
)


class UnitGateway(ABC):
    """Fetches acquisition units and memberships by CQL filter."""

    @abstractmethod
    async def fetch_units(self, query: str, offset: int, limit: int) -> AcquisitionUnitCollection:
        raise NotImplementedError

    @abstractmethod
    async def fetch_memberships(
        self, query: str, offset: int, limit: int
    ) -> AcquisitionUnitMembershipCollection:
        raise NotImplementedError


def default_units_query(query: str | None) -> str:
    """Restrict a units query to active units unless it names ``isDeleted``."""
    if not query or not query.strip():
        return ACTIVE_UNITS_CQL
    if IS_DELETED_PROP not in query:
        return combine("and", ACTIVE_UNITS_CQL, query)
    return query


_M = TypeVar("_M", bound=BaseModel)


def _parse(model: type[_M], payload: Any) -> _M:
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise UpstreamServiceError(f"Unexpected {model.__name__} payload: {e.error_count()} error(s)") from e


class HttpUnitGateway(UnitGateway):
    """UnitGateway over HTTP for one inbound request.

    Args:
        headers: Inbound request headers; Okapi headers are forwarded.
        config: Fallback base URL and request timeout.
        client: Optional shared ``httpx.AsyncClient``; when omitted a client
            is opened and closed per call.

    No retries: transport errors and non-2xx responses raise
    :class:`UpstreamServiceError` and the caller owns any retry policy.
    """

    def __init__(
        self,
        headers: Mapping[str, str],
        config: Optional[ProtectionConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config or ProtectionConfig()
        self._headers = {key.lower(): value for key, value in headers.items()}
        self._client = client

    @property
    def base_url(self) -> str:
        url = self._headers.get(OKAPI_URL_HEADER) or self._config.okapi_url
        if not url:
            raise ConfigurationError(
                "Unit storage URL is not configured: no x-okapi-url header and no okapi_url setting"
            )
        return url.rstrip("/")

    def _request_headers(self) -> dict[str, str]:
        headers = {name: self._headers[name] for name in FORWARDED_HEADERS if name in self._headers}
        headers["Accept"] = "application/json, text/plain"
        return headers

    async def fetch_units(self, query: str, offset: int, limit: int) -> AcquisitionUnitCollection:
        endpoint = (
            f"{ACQUISITIONS_UNITS_PATH}?limit={limit}&offset={offset}"
            f"{build_query_param(default_units_query(query))}"
        )
        payload = await self._get(endpoint)
        return _parse(AcquisitionUnitCollection, payload)

    async def fetch_memberships(
        self, query: str, offset: int, limit: int
    ) -> AcquisitionUnitMembershipCollection:
        endpoint = f"{ACQUISITIONS_MEMBERSHIPS_PATH}?limit={limit}&offset={offset}{build_query_param(query)}"
        payload = await self._get(endpoint)
        return _parse(AcquisitionUnitMembershipCollection, payload)

    async def _get(self, endpoint: str) -> Any:
        url = self.base_url + endpoint
        logger.debug("Trying to get object by endpoint '%s'", safe_preview(endpoint))
        try:
            if self._client is not None:
                response = await self._client.get(url, headers=self._request_headers())
            else:
                async with httpx.AsyncClient(timeout=self._config.request_timeout_seconds) as client:
                    response = await client.get(url, headers=self._request_headers())
        except httpx.HTTPError as e:
            logger.error("Error getting object by endpoint '%s': %s", safe_preview(endpoint), e)
            raise UpstreamServiceError(f"Unit storage request failed: {e}") from e

        if not response.is_success:
            logger.error(
                "Unit storage returned %s for endpoint '%s'",
                response.status_code,
                safe_preview(endpoint),
            )
            raise UpstreamServiceError(
                f"Unit storage returned {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamServiceError(
                "Unit storage returned a non-JSON body",
                status_code=response.status_code,
                body=response.text,
            ) from e


__all__ = [
    "ACQUISITIONS_MEMBERSHIPS_PATH",
    "ACQUISITIONS_UNITS_PATH",
    "HttpUnitGateway",
    "OKAPI_TENANT_HEADER",
    "OKAPI_TOKEN_HEADER",
    "OKAPI_URL_HEADER",
    "OKAPI_USERID_HEADER",
    "UnitGateway",
    "default_units_query",
]
