"""Shared fixtures: an in-memory unit gateway and caller factories."""

from __future__ import annotations

import re

import pytest
from acqprotect import (
    AcquisitionUnit,
    AcquisitionUnitCollection,
    AcquisitionUnitMembership,
    AcquisitionUnitMembershipCollection,
    CallerContext,
    UnitGateway,
)
from acqprotect.config import MANAGE_PERMISSION

_ID_CLAUSE = re.compile(r"(?<![A-Za-z])id==\(([^)]*)\)")
_UNIT_ID_CLAUSE = re.compile(r"acquisitionsUnitId==\(([^)]*)\)")
_USER_ID = re.compile(r"userId==(\S+)")


def _split_ids(group: str) -> set[str]:
    return {part.strip() for part in group.split(" or ") if part.strip()}


class FakeUnitGateway(UnitGateway):
    """In-memory gateway that understands the CQL shapes the engine emits.

    Every call is recorded in ``unit_queries`` / ``membership_queries``.
    """

    def __init__(self) -> None:
        self.units: dict[str, AcquisitionUnit] = {}
        self.memberships: list[AcquisitionUnitMembership] = []
        self.unit_queries: list[tuple[str, int, int]] = []
        self.membership_queries: list[tuple[str, int, int]] = []

    def add_unit(self, unit_id: str, **flags: bool) -> AcquisitionUnit:
        unit = AcquisitionUnit(id=unit_id, **flags)
        self.units[unit_id] = unit
        return unit

    def add_membership(self, user_id: str, unit_id: str) -> None:
        self.memberships.append(
            AcquisitionUnitMembership(
                id=f"{user_id}:{unit_id}", acquisitionsUnitId=unit_id, userId=user_id
            )
        )

    def revoke_memberships(self, user_id: str) -> None:
        self.memberships = [m for m in self.memberships if m.user_id != user_id]

    async def fetch_units(self, query: str, offset: int, limit: int) -> AcquisitionUnitCollection:
        self.unit_queries.append((query, offset, limit))
        units = list(self.units.values())
        if "isDeleted=*" not in query:
            units = [u for u in units if not u.is_deleted]
        match = _ID_CLAUSE.search(query)
        if match:
            ids = _split_ids(match.group(1))
            units = [u for u in units if u.id in ids]
        if "protectRead==false" in query:
            units = [u for u in units if not u.protect_read]
        return AcquisitionUnitCollection(acquisitionsUnits=units, totalRecords=len(units))

    async def fetch_memberships(
        self, query: str, offset: int, limit: int
    ) -> AcquisitionUnitMembershipCollection:
        self.membership_queries.append((query, offset, limit))
        memberships = list(self.memberships)
        user = _USER_ID.search(query)
        if user:
            memberships = [m for m in memberships if m.user_id == user.group(1)]
        match = _UNIT_ID_CLAUSE.search(query)
        if match:
            ids = _split_ids(match.group(1))
            memberships = [m for m in memberships if m.acquisitions_unit_id in ids]
        return AcquisitionUnitMembershipCollection(
            acquisitionsUnitMemberships=memberships, totalRecords=len(memberships)
        )


MANAGE = MANAGE_PERMISSION


@pytest.fixture
def gateway() -> FakeUnitGateway:
    return FakeUnitGateway()


@pytest.fixture
def caller() -> CallerContext:
    return CallerContext(user_id="user-1")


@pytest.fixture
def manager() -> CallerContext:
    return CallerContext(user_id="user-1", granted_permissions=frozenset({MANAGE}))
