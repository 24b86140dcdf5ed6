"""Pure policy functions over fetched acquisition units.

Provides:
- ``apply_merging_strategy()``: combine unit flags into one restricted verdict.
- ``active_units()`` / ``extract_unit_ids()`` / ``missing_unit_ids()``: unit set helpers.
- ``is_unit_assignment_changed()``: unordered comparison of assignments.

Nothing here performs I/O, so every rule can be tested in isolation.
"""

from __future__ import annotations

from typing import Iterable

from ..models import AcquisitionUnit
from .constants import ProtectedOperationType


def apply_merging_strategy(
    units: Iterable[AcquisitionUnit],
    operations: Iterable[ProtectedOperationType],
) -> bool:
    """Decide whether a record assigned to ``units`` is restricted for ``operations``.

    The record is restricted only when *every* unit protects *at least one*
    of the requested operations. A single unit that leaves all requested
    operations open makes the record unrestricted.

    An empty unit collection is not restricted; callers handle the "no
    active units" case before reaching this point.

    Example::

        read_only = AcquisitionUnit(id="u1", protectRead=True, protectUpdate=False)
        apply_merging_strategy([read_only], {ProtectedOperationType.READ})    # True
        apply_merging_strategy([read_only], {ProtectedOperationType.UPDATE})  # False
    """
    unit_list = list(units)
    if not unit_list:
        return False
    ops = tuple(operations)
    return all(any(op.is_protected(unit) for op in ops) for unit in unit_list)


def active_units(units: Iterable[AcquisitionUnit]) -> list[AcquisitionUnit]:
    return [unit for unit in units if not unit.is_deleted]


def extract_unit_ids(units: Iterable[AcquisitionUnit]) -> list[str]:
    return [unit.id for unit in units]


def distinct_ids(ids: Iterable[str] | None) -> list[str]:
    """De-duplicate ids keeping first-seen order; ``None`` is an empty list."""
    return list(dict.fromkeys(ids or ()))


def missing_unit_ids(expected_ids: Iterable[str], units: Iterable[AcquisitionUnit]) -> list[str]:
    """Ids in ``expected_ids`` with no matching unit, in requested order."""
    found = {unit.id for unit in units}
    return [unit_id for unit_id in distinct_ids(expected_ids) if unit_id not in found]


def is_unit_assignment_changed(new_ids: Iterable[str] | None, current_ids: Iterable[str] | None) -> bool:
    """Compare two assignments as unordered sets."""
    return set(new_ids or ()) != set(current_ids or ())


__all__ = [
    "active_units",
    "apply_merging_strategy",
    "distinct_ids",
    "extract_unit_ids",
    "is_unit_assignment_changed",
    "missing_unit_ids",
]
