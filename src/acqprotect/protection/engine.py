"""Protection engine: unit-based CRUD restrictions for protected records.

Provides:
- ``ProtectionOutcome`` / ``DenialReason``: decision vocabulary.
- ``ProtectionDecision``: result of an evaluation (allow / denied / units missing).
- ``ProtectionService``: evaluates operations against a record's assigned
  units and guards changes to that assignment.

The service keeps no state between calls: units and memberships are fetched
fresh through the :class:`~acqprotect.gateway.UnitGateway` for every
evaluation, so one instance may serve any number of concurrent requests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from ..config import ProtectionConfig
from ..cql import ACQUISITIONS_UNIT_ID, ALL_UNITS_CQL, USER_ID, combine, ids_to_clause
from ..exceptions import (
    ProtectionInternalError,
    UnitsNotFoundError,
    UserHasNoAcqPermissionError,
    UserHasNoPermissionError,
)
from ..gateway import UnitGateway
from ..logging import CallerLoggerAdapter, get_caller_logger, safe_preview
from ..models import AcquisitionUnit, CallerContext
from .constants import ProtectedOperationType
from .policy import (
    active_units,
    apply_merging_strategy,
    distinct_ids,
    extract_unit_ids,
    is_unit_assignment_changed,
    missing_unit_ids,
)

logger = logging.getLogger(__name__)


# ── Decision ─────────────────────────────────────────────────────


class ProtectionOutcome(str, Enum):
    ALLOW = "allow"
    DENIED = "denied"
    UNITS_MISSING = "units_missing"


class DenialReason(str, Enum):
    """Why a DENIED decision was reached."""

    NOT_A_MEMBER = "not_a_member"  # no membership in any active protecting unit
    MANAGE_PERMISSION_REQUIRED = "manage_permission_required"  # assignment changed


@dataclass(frozen=True)
class ProtectionDecision:
    """Result of a protection check.

    ``missing_unit_ids`` is populated only for ``UNITS_MISSING``;
    ``denial`` only for ``DENIED``.
    """

    outcome: ProtectionOutcome
    reason: str = ""
    missing_unit_ids: tuple[str, ...] = ()
    denial: Optional[DenialReason] = None

    @property
    def allowed(self) -> bool:
        return self.outcome is ProtectionOutcome.ALLOW

    @classmethod
    def allow(cls, reason: str = "") -> "ProtectionDecision":
        return cls(ProtectionOutcome.ALLOW, reason=reason)

    @classmethod
    def denied(cls, denial: DenialReason, reason: str = "") -> "ProtectionDecision":
        return cls(ProtectionOutcome.DENIED, reason=reason, denial=denial)

    @classmethod
    def units_missing(cls, unit_ids: Iterable[str], reason: str = "") -> "ProtectionDecision":
        return cls(ProtectionOutcome.UNITS_MISSING, reason=reason, missing_unit_ids=tuple(unit_ids))

    def raise_for_outcome(self) -> None:
        """Raise the error matching a non-allow decision.

        Raises:
            UnitsNotFoundError: referenced units are missing or deleted.
            UserHasNoAcqPermissionError: assignment change without manage permission.
            UserHasNoPermissionError: caller is not a member of a protecting unit.
        """
        if self.outcome is ProtectionOutcome.UNITS_MISSING:
            raise UnitsNotFoundError(list(self.missing_unit_ids))
        if self.outcome is ProtectionOutcome.DENIED:
            if self.denial is DenialReason.MANAGE_PERMISSION_REQUIRED:
                raise UserHasNoAcqPermissionError()
            raise UserHasNoPermissionError()


# ── Service ──────────────────────────────────────────────────────


class ProtectionService:
    """Decides whether a caller may perform operations on a protected record.

    Args:
        gateway: Source of units and memberships (fresh per call).
        config: Page size and manage permission; defaults if omitted.

    Example::

        service = ProtectionService(HttpUnitGateway(request.headers))
        decision = await service.evaluate(org.acq_unit_ids, {ProtectedOperationType.READ}, caller)
        decision.raise_for_outcome()
    """

    def __init__(self, gateway: UnitGateway, config: Optional[ProtectionConfig] = None) -> None:
        self._gateway = gateway
        self._config = config or ProtectionConfig()

    async def evaluate(
        self,
        assigned_unit_ids: Iterable[str] | None,
        operations: Iterable[ProtectedOperationType],
        caller: CallerContext,
    ) -> ProtectionDecision:
        """Check ``operations`` on a record assigned to ``assigned_unit_ids``.

        Decision logic:
        1. No assigned units → ``ALLOW``.
        2. Fetch assigned units in any deletion state.
        3. Any id not found → ``UNITS_MISSING`` with exactly those ids.
        4. Only deleted units assigned → ``ALLOW``.
        5. Not every active unit protects a requested operation → ``ALLOW``.
        6. Caller belongs to at least one active unit → ``ALLOW``, else ``DENIED``.
        """
        log = get_caller_logger(__name__, caller)
        requested_ids = distinct_ids(assigned_unit_ids)
        if not requested_ids:
            return ProtectionDecision.allow("No acquisition units assigned")

        ops = frozenset(operations)
        units = await self._get_units_by_ids(requested_ids)

        missing = missing_unit_ids(requested_ids, units)
        if missing:
            log.warning("Acquisition units cannot be found: %s", safe_preview(missing))
            return ProtectionDecision.units_missing(missing, "Assigned acquisition units cannot be found")

        active = active_units(units)
        if not active:
            log.debug("Only deleted acquisition units are assigned: %s", safe_preview(requested_ids))
            return ProtectionDecision.allow("Only deleted acquisition units assigned")

        if not apply_merging_strategy(active, ops):
            log.debug(
                "Operations %s are not restricted by units %s",
                safe_preview(sorted(op.value for op in ops)),
                safe_preview(extract_unit_ids(active)),
            )
            return ProtectionDecision.allow("Operations are not restricted")

        return await self._verify_user_is_member(extract_unit_ids(active), caller, log)

    async def guard_reassignment(
        self,
        new_unit_ids: Iterable[str] | None,
        current_unit_ids: Iterable[str] | None,
        caller: CallerContext,
    ) -> ProtectionDecision:
        """Check an update that may change a record's unit assignment.

        1. Changed assignment without the manage permission → ``DENIED``.
        2. Newly added units must exist and be active → else ``UNITS_MISSING``.
        3. The *current* assignment gates the update (``evaluate`` with UPDATE).
        """
        log = get_caller_logger(__name__, caller)
        new_ids = distinct_ids(new_unit_ids)
        current_ids = distinct_ids(current_unit_ids)

        if is_unit_assignment_changed(new_ids, current_ids) and not caller.has_permission(
            self._config.manage_permission
        ):
            log.warning("Acquisition unit assignment change requires manage permission")
            return ProtectionDecision.denied(
                DenialReason.MANAGE_PERMISSION_REQUIRED,
                "Changing acquisition unit assignment requires manage permission",
            )

        current = set(current_ids)
        added = [unit_id for unit_id in new_ids if unit_id not in current]
        if added:
            decision = await self._verify_units_are_active(added, log)
            if not decision.allowed:
                return decision

        return await self.evaluate(current_ids, {ProtectedOperationType.UPDATE}, caller)

    # ── Raising wrappers ───────────────────────────────────────

    async def check_operations_restrictions(
        self,
        unit_ids: Iterable[str] | None,
        operations: Iterable[ProtectedOperationType],
        caller: CallerContext,
    ) -> None:
        """Raise unless ``operations`` are allowed; see :meth:`evaluate`."""
        decision = await self.evaluate(unit_ids, operations, caller)
        decision.raise_for_outcome()

    async def validate_acq_units_on_update(
        self,
        updated_unit_ids: Iterable[str] | None,
        current_unit_ids: Iterable[str] | None,
        caller: CallerContext,
    ) -> None:
        """Raise unless the update is allowed; see :meth:`guard_reassignment`."""
        decision = await self.guard_reassignment(updated_unit_ids, current_unit_ids, caller)
        decision.raise_for_outcome()

    async def verify_units_are_active(self, unit_ids: Iterable[str] | None) -> None:
        """Raise UnitsNotFoundError unless every unit exists and is not deleted."""
        ids = distinct_ids(unit_ids)
        if not ids:
            return
        decision = await self._verify_units_are_active(ids, CallerLoggerAdapter(logger))
        decision.raise_for_outcome()

    # ── Internals ──────────────────────────────────────────────

    async def _get_units_by_ids(self, ids: list[str]) -> list[AcquisitionUnit]:
        query = combine("and", ALL_UNITS_CQL, ids_to_clause(ids))
        collection = await self._gateway.fetch_units(query, 0, self._config.max_page_size)
        requested = set(ids)
        # Keyed by id: a unit listed twice counts once, unrequested units are dropped
        by_id = {unit.id: unit for unit in collection.units if unit.id in requested}
        return list(by_id.values())

    async def _verify_units_are_active(
        self, ids: list[str], log: CallerLoggerAdapter
    ) -> ProtectionDecision:
        units = await self._get_units_by_ids(ids)
        active = {unit.id for unit in active_units(units)}
        offenders = [unit_id for unit_id in ids if unit_id not in active]
        if offenders:
            log.warning("Acquisition units are missing or deleted: %s", safe_preview(offenders))
            return ProtectionDecision.units_missing(offenders, "Acquisition units are missing or deleted")
        return ProtectionDecision.allow()

    async def _verify_user_is_member(
        self, active_ids: list[str], caller: CallerContext, log: CallerLoggerAdapter
    ) -> ProtectionDecision:
        query = f"{USER_ID}=={caller.user_id} AND {ids_to_clause(active_ids, ACQUISITIONS_UNIT_ID, True)}"
        memberships = await self._gateway.fetch_memberships(query, 0, self._config.max_page_size)

        if memberships.total_records < 0:
            raise ProtectionInternalError(
                f"Negative membership count: totalRecords={memberships.total_records}"
            )
        # Storage may omit totalRecords; returned records still count
        count = max(memberships.total_records, len(memberships.memberships))

        if count == 0:
            log.warning("User is not a member of any protecting acquisition unit")
            log.debug("Protecting units: %s", safe_preview(active_ids))
            return ProtectionDecision.denied(DenialReason.NOT_A_MEMBER, "User is not a member of protecting units")

        log.debug("User holds %d membership(s) in protecting units", count)
        return ProtectionDecision.allow("User is a member of a protecting unit")


__all__ = [
    "DenialReason",
    "ProtectionDecision",
    "ProtectionOutcome",
    "ProtectionService",
]
