from __future__ import annotations

from collections.abc import Sequence

from ..models.column_role import ColumnRole, FixedRole

"""Active period range derived from the Date-tagged columns."""

__all__ = [
    "date_indices",
    "date_range",
    "set_date_range",
]


def date_indices(roles: Sequence[ColumnRole]) -> list[int]:
    return [i for i, r in enumerate(roles) if r is FixedRole.DATE]


def date_range(roles: Sequence[ColumnRole]) -> tuple[int, int] | None:
    """``(first, last)`` Date column index, or None without any Date column."""
    indices = date_indices(roles)
    if not indices:
        return None
    return min(indices), max(indices)


def set_date_range(roles: Sequence[ColumnRole], start: int, end: int) -> tuple[ColumnRole, ...]:
    """Re-tag columns ``start..end`` (inclusive) as Date.

    Date columns left outside the new bound revert to Ignore; other roles
    outside the bound are untouched.
    """
    if start > end:
        raise ValueError(f"invalid date range: start {start} > end {end}")
    if start < 0 or end >= len(roles):
        raise ValueError(f"date range {start}..{end} outside columns 0..{len(roles) - 1}")
    updated: list[ColumnRole] = []
    for i, role in enumerate(roles):
        if start <= i <= end:
            updated.append(FixedRole.DATE)
        elif role is FixedRole.DATE:
            updated.append(FixedRole.IGNORE)
        else:
            updated.append(role)
    return tuple(updated)
