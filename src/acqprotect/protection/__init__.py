"""Acquisition-unit protection for shared organization records.

Defines:
- ProtectedOperationType: CRUD operations a unit may protect
- AcqDesiredPermissions: permissions the engine checks itself
- apply_merging_strategy(): combine unit flags into one restricted verdict
- ProtectionService: evaluate operations, guard unit reassignment
- AcqUnitsClauseBuilder: visibility clause for list/search queries
"""

from .constants import AcqDesiredPermissions, ProtectedOperationType
from .engine import (
    DenialReason,
    ProtectionDecision,
    ProtectionOutcome,
    ProtectionService,
)
from .policy import (
    active_units,
    apply_merging_strategy,
    distinct_ids,
    extract_unit_ids,
    is_unit_assignment_changed,
    missing_unit_ids,
)
from .visibility import AcqUnitsClauseBuilder

__all__ = [
    "AcqDesiredPermissions",
    "AcqUnitsClauseBuilder",
    "DenialReason",
    "ProtectedOperationType",
    "ProtectionDecision",
    "ProtectionOutcome",
    "ProtectionService",
    "active_units",
    "apply_merging_strategy",
    "distinct_ids",
    "extract_unit_ids",
    "is_unit_assignment_changed",
    "missing_unit_ids",
]
