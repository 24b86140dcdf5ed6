"""CQL query-construction helpers.

Provides:
- ``combine()``: join boolean filter expressions, keeping a trailing ``sortBy``.
- ``ids_to_clause()``: id-set membership clause (``field==(a or b)``).
- ``encode_for_transport()`` / ``build_query_param()``: URL encoding.
- CQL vocabulary constants shared by the protection engine and the gateway.
"""

from __future__ import annotations

import re
from typing import Iterable
from urllib.parse import quote_plus

# ── Field names ─────────────────────────────────────────

ID = "id"
ACQUISITIONS_UNIT_ID = "acquisitionsUnitId"
ACQUISITIONS_UNIT_IDS = "acqUnitIds"
IS_DELETED_PROP = "isDeleted"
USER_ID = "userId"

# ── Clauses ─────────────────────────────────────────────

ALL_UNITS_CQL = IS_DELETED_PROP + "=*"
ACTIVE_UNITS_CQL = IS_DELETED_PROP + "==false"
OPEN_FOR_READ_CQL = "protectRead==false"
NO_ACQ_UNIT_ASSIGNED_CQL = "cql.allRecords=1 not " + ACQUISITIONS_UNIT_IDS + " <> []"

CQL_SORT_BY_PATTERN = re.compile(r"(.*)(\ssortBy\s.*)", re.IGNORECASE | re.DOTALL)


def combine(operator: str, *expressions: str | None) -> str:
    """Combine CQL expressions with a boolean operator.

    Each non-blank expression is wrapped in parentheses. A ``sortBy`` suffix
    on the last expression is moved after the final closing parenthesis so it
    orders the whole combined filter.

    Example::

        combine("and", "a==1", "b==2 sortBy c")
        # "(a==1) and (b==2) sortBy c"
    """
    if not expressions:
        return ""

    parts = list(expressions)
    sorting = ""

    last = parts[-1]
    if last:
        match = CQL_SORT_BY_PATTERN.search(last)
        if match:
            parts[-1] = match.group(1)
            sorting = match.group(2)

    kept = [expr for expr in parts if expr and expr.strip()]
    if not kept:
        return sorting.strip()

    return "(" + f") {operator} (".join(kept) + ")" + sorting


def ids_to_clause(ids: Iterable[str], field_name: str = ID, strict_match: bool = True) -> str:
    """Build an id-set membership clause joined with ``or``.

    An empty ``ids`` gives ``field==()``, a valid clause that matches nothing.
    Callers wanting "no restriction" for an empty set must handle it first.
    """
    prefix = field_name + ("==(" if strict_match else "=(")
    return prefix + " or ".join(ids) + ")"


def encode_for_transport(query: str | None) -> str:
    """Percent-encode a CQL query for a request URL; blank input gives ``""``."""
    if not query or not query.strip():
        return ""
    return quote_plus(query, encoding="utf-8")


def build_query_param(query: str | None) -> str:
    """Return ``&query=<encoded>`` or ``""`` when there is no filter."""
    encoded = encode_for_transport(query)
    return f"&query={encoded}" if encoded else ""


__all__ = [
    "ACQUISITIONS_UNIT_ID",
    "ACQUISITIONS_UNIT_IDS",
    "ACTIVE_UNITS_CQL",
    "ALL_UNITS_CQL",
    "CQL_SORT_BY_PATTERN",
    "ID",
    "IS_DELETED_PROP",
    "NO_ACQ_UNIT_ASSIGNED_CQL",
    "OPEN_FOR_READ_CQL",
    "USER_ID",
    "build_query_param",
    "combine",
    "encode_for_transport",
    "ids_to_clause",
]
