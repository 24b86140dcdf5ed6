"""Tests for AcqUnitsClauseBuilder."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest
from acqprotect import (
    AcqUnitsClauseBuilder,
    AcquisitionUnitCollection,
    AcquisitionUnitMembershipCollection,
    CallerContext,
    UpstreamServiceError,
)
from acqprotect.cql import NO_ACQ_UNIT_ASSIGNED_CQL

NO_UNIT = "cql.allRecords=1 not acqUnitIds <> []"


class TestBuildClause:
    """Tests for build_acq_units_cql_clause."""

    @pytest.mark.asyncio
    async def test_no_readable_units_restricts_to_unassigned(self, gateway, caller) -> None:
        gateway.add_unit("u1", protectRead=True)
        builder = AcqUnitsClauseBuilder(gateway)

        clause = await builder.build_acq_units_cql_clause(caller)

        assert clause == NO_UNIT
        assert NO_ACQ_UNIT_ASSIGNED_CQL == NO_UNIT

    @pytest.mark.asyncio
    async def test_member_and_open_units_are_unioned(self, gateway, caller) -> None:
        gateway.add_unit("member", protectRead=True)
        gateway.add_unit("open", protectRead=False)
        gateway.add_unit("closed", protectRead=True)
        gateway.add_membership("user-1", "member")
        builder = AcqUnitsClauseBuilder(gateway)

        clause = await builder.build_acq_units_cql_clause(caller)

        assert clause == f"acqUnitIds=(member or open) or ({NO_UNIT})"

    @pytest.mark.asyncio
    async def test_ids_are_distinct(self, gateway, caller) -> None:
        """A unit both open and holding the caller's membership appears once."""
        gateway.add_unit("u1", protectRead=False)
        gateway.add_membership("user-1", "u1")
        builder = AcqUnitsClauseBuilder(gateway)

        clause = await builder.build_acq_units_cql_clause(caller)

        assert clause == f"acqUnitIds=(u1) or ({NO_UNIT})"

    @pytest.mark.asyncio
    async def test_deleted_open_units_are_excluded(self, gateway, caller) -> None:
        gateway.add_unit("gone", protectRead=False, isDeleted=True)
        builder = AcqUnitsClauseBuilder(gateway)

        assert await builder.build_acq_units_cql_clause(caller) == NO_UNIT

    @pytest.mark.asyncio
    async def test_issues_expected_queries(self, gateway, caller) -> None:
        builder = AcqUnitsClauseBuilder(gateway)

        await builder.build_acq_units_cql_clause(caller)

        assert gateway.membership_queries == [("userId==user-1", 0, 2147483647)]
        assert gateway.unit_queries == [("(isDeleted==false) and (protectRead==false)", 0, 2147483647)]

    @pytest.mark.asyncio
    async def test_other_users_memberships_ignored(self, gateway) -> None:
        gateway.add_unit("u1", protectRead=True)
        gateway.add_membership("someone-else", "u1")
        builder = AcqUnitsClauseBuilder(gateway)

        clause = await builder.build_acq_units_cql_clause(CallerContext(user_id="user-1"))

        assert clause == NO_UNIT

    @pytest.mark.asyncio
    async def test_lookups_run_concurrently(self, caller) -> None:
        """Both lookups are in flight before either completes."""
        started: list[str] = []
        release = asyncio.Event()

        async def fetch_memberships(query, offset, limit):
            started.append("memberships")
            if len(started) == 2:
                release.set()
            await release.wait()
            return AcquisitionUnitMembershipCollection()

        async def fetch_units(query, offset, limit):
            started.append("units")
            if len(started) == 2:
                release.set()
            await release.wait()
            return AcquisitionUnitCollection()

        gateway = AsyncMock()
        gateway.fetch_memberships.side_effect = fetch_memberships
        gateway.fetch_units.side_effect = fetch_units
        builder = AcqUnitsClauseBuilder(gateway)

        clause = await asyncio.wait_for(builder.build_acq_units_cql_clause(caller), timeout=1)

        assert clause == NO_UNIT
        assert sorted(started) == ["memberships", "units"]

    @pytest.mark.asyncio
    async def test_failure_cancels_sibling_lookup(self, caller) -> None:
        cancelled = asyncio.Event()

        async def fetch_units(query, offset, limit):
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise
            return AcquisitionUnitCollection()

        gateway = AsyncMock()
        gateway.fetch_memberships.side_effect = UpstreamServiceError("storage down", status_code=503)
        gateway.fetch_units.side_effect = fetch_units
        builder = AcqUnitsClauseBuilder(gateway)

        with pytest.raises(UpstreamServiceError):
            await builder.build_acq_units_cql_clause(caller)
        assert cancelled.is_set()


class TestBuildSearchQuery:
    """Tests for build_search_query."""

    @pytest.mark.asyncio
    async def test_blank_query_returns_clause(self, gateway, caller) -> None:
        builder = AcqUnitsClauseBuilder(gateway)
        assert await builder.build_search_query(caller) == NO_UNIT
        assert await builder.build_search_query(caller, "  ") == NO_UNIT

    @pytest.mark.asyncio
    async def test_clause_is_and_ed_with_query(self, gateway, caller) -> None:
        gateway.add_unit("u1", protectRead=False)
        builder = AcqUnitsClauseBuilder(gateway)

        query = await builder.build_search_query(caller, "name=Amazon*")

        assert query == f"(acqUnitIds=(u1) or ({NO_UNIT})) and (name=Amazon*)"

    @pytest.mark.asyncio
    async def test_sort_by_stays_last(self, gateway, caller) -> None:
        builder = AcqUnitsClauseBuilder(gateway)

        query = await builder.build_search_query(caller, "status==Active sortBy name")

        assert query == f"({NO_UNIT}) and (status==Active) sortBy name"
