"""Protected operation types and desired permissions.

Provides:
- ``ProtectedOperationType``: CRUD operations a unit may protect.
- ``AcqDesiredPermissions``: permissions checked by the engine itself (defined with the config).
"""

from __future__ import annotations

from enum import Enum

from ..config import AcqDesiredPermissions
from ..models import AcquisitionUnit


class ProtectedOperationType(str, Enum):
    """CRUD operation guarded by an acquisition unit's ``protect*`` flag."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"

    def is_protected(self, unit: AcquisitionUnit) -> bool:
        """Return the unit's flag for this operation."""
        if self is ProtectedOperationType.CREATE:
            return unit.protect_create
        if self is ProtectedOperationType.READ:
            return unit.protect_read
        if self is ProtectedOperationType.UPDATE:
            return unit.protect_update
        return unit.protect_delete


__all__ = [
    "AcqDesiredPermissions",
    "ProtectedOperationType",
]
