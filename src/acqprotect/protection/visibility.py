"""Visibility clause for list and search queries.

Computes the CQL fragment that limits a search to records the caller may
read: records assigned to a unit the caller belongs to, records assigned to a
unit open for reading, and records with no unit at all.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from ..config import ProtectionConfig
from ..cql import (
    ACQUISITIONS_UNIT_IDS,
    ACTIVE_UNITS_CQL,
    NO_ACQ_UNIT_ASSIGNED_CQL,
    OPEN_FOR_READ_CQL,
    USER_ID,
    combine,
    ids_to_clause,
)
from ..gateway import UnitGateway
from ..logging import get_caller_logger, safe_preview
from ..models import CallerContext
from .policy import distinct_ids

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


async def _gather_or_cancel(*aws: Awaitable[_T]) -> list[_T]:
    """Run awaitables concurrently; on any failure cancel the rest and re-raise."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class AcqUnitsClauseBuilder:
    """Builds the acquisition-units restriction for a caller's search.

    Args:
        gateway: Source of units and memberships.
        config: Page size; defaults if omitted.

    Example::

        builder = AcqUnitsClauseBuilder(HttpUnitGateway(request.headers))
        query = await builder.build_search_query(caller, "name=Amazon* sortBy name")
        # (acqUnitIds=(u1 or u2) or (cql.allRecords=1 not acqUnitIds <> [])) and (name=Amazon*) sortBy name
    """

    def __init__(self, gateway: UnitGateway, config: Optional[ProtectionConfig] = None) -> None:
        self._gateway = gateway
        self._config = config or ProtectionConfig()

    async def build_acq_units_cql_clause(self, caller: CallerContext) -> str:
        """Return the visibility clause for ``caller``.

        The clause must be AND-ed with the caller's own query, never used in
        its place.
        """
        member_ids, open_ids = await _gather_or_cancel(
            self._get_unit_ids_for_user(caller),
            self._get_open_for_read_unit_ids(),
        )
        ids = distinct_ids([*member_ids, *open_ids])

        log = get_caller_logger(__name__, caller)
        if not ids:
            log.debug("No readable acquisition units, restricting to unassigned records")
            return NO_ACQ_UNIT_ASSIGNED_CQL

        log.debug("Readable acquisition units: %s", safe_preview(ids))
        return f"{ids_to_clause(ids, ACQUISITIONS_UNIT_IDS, False)} or ({NO_ACQ_UNIT_ASSIGNED_CQL})"

    async def build_search_query(self, caller: CallerContext, query: Optional[str] = None) -> str:
        """Merge the visibility clause with the caller's query (``sortBy`` kept last)."""
        clause = await self.build_acq_units_cql_clause(caller)
        if not query or not query.strip():
            return clause
        return combine("and", clause, query)

    async def _get_unit_ids_for_user(self, caller: CallerContext) -> list[str]:
        memberships = await self._gateway.fetch_memberships(
            f"{USER_ID}=={caller.user_id}", 0, self._config.max_page_size
        )
        ids = [membership.acquisitions_unit_id for membership in memberships.memberships]
        logger.debug("User belongs to %d acq units: %s", len(ids), safe_preview(ids))
        return ids

    async def _get_open_for_read_unit_ids(self) -> list[str]:
        units = await self._gateway.fetch_units(
            combine("and", ACTIVE_UNITS_CQL, OPEN_FOR_READ_CQL), 0, self._config.max_page_size
        )
        ids = [unit.id for unit in units.units if not unit.is_deleted and not unit.protect_read]
        logger.debug("%d acq units with 'protectRead==false' are found: %s", len(ids), safe_preview(ids))
        return ids


__all__ = [
    "AcqUnitsClauseBuilder",
]
