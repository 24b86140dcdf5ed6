"""Data models for acquisition units, memberships and callers.

These are Pydantic models parsed from storage JSON (camelCase aliases) and
exposed with snake_case attributes.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class AcquisitionUnit(BaseModel):
    """A policy boundary flagging CRUD operations as protected."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    id: str
    name: str | None = None
    is_deleted: bool = Field(default=False, alias="isDeleted")
    protect_create: bool = Field(default=True, alias="protectCreate")
    protect_read: bool = Field(default=False, alias="protectRead")
    protect_update: bool = Field(default=True, alias="protectUpdate")
    protect_delete: bool = Field(default=True, alias="protectDelete")


class AcquisitionUnitMembership(BaseModel):
    """Join record between a user and an acquisition unit."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    id: str | None = None
    acquisitions_unit_id: str = Field(alias="acquisitionsUnitId")
    user_id: str = Field(alias="userId")


class AcquisitionUnitCollection(BaseModel):
    """Page of units as returned by the units storage endpoint."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    units: list[AcquisitionUnit] = Field(default_factory=list, alias="acquisitionsUnits")
    total_records: int = Field(default=0, alias="totalRecords")


class AcquisitionUnitMembershipCollection(BaseModel):
    """Page of memberships as returned by the memberships storage endpoint."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    memberships: list[AcquisitionUnitMembership] = Field(
        default_factory=list, alias="acquisitionsUnitMemberships"
    )
    total_records: int = Field(default=0, alias="totalRecords")


class CallerContext(BaseModel):
    """Verified identity and granted permissions of the current caller."""

    model_config = ConfigDict(frozen=True)

    # Interpolated into CQL as a bare term: one token, no grouping or quoting
    user_id: str = Field(pattern=r'^[^\s()"=<>]+$')
    granted_permissions: frozenset[str] = Field(default_factory=frozenset)

    def has_permission(self, permission: str) -> bool:
        return permission in self.granted_permissions


__all__ = [
    "AcquisitionUnit",
    "AcquisitionUnitCollection",
    "AcquisitionUnitMembership",
    "AcquisitionUnitMembershipCollection",
    "CallerContext",
]
