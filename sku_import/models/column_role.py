from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

"""ColumnRole model for the CSV import engine.

A column role is either one of the fixed roles (closed enum) or a named
aggregatable dimension. Keeping the two apart lets the classifier check
exclusivity and availability rules exhaustively instead of comparing raw
strings.
"""

__all__ = [
    "FixedRole",
    "Dimension",
    "ColumnRole",
    "RESTRICTED_ROLES",
    "MULTI_COLUMN_ROLES",
    "parse_role",
    "role_label",
    "is_dimension_role",
]


class FixedRole(Enum):
    """Fixed role vocabulary. Values are the labels used in the UI / AI output."""
    MATERIAL_CODE = "Material Code"
    DESCRIPTION = "Description"
    DATE = "Date"
    DIVISION = "Division"
    CLUSTER = "Cluster"
    LIFECYCLE_PHASE = "Lifecycle Phase"
    IGNORE = "Ignore"


@dataclass(frozen=True)
class Dimension:
    """Aggregatable field carried through to output verbatim.

    ``name`` is either another CSV header or a user-declared custom field.
    """
    name: str

    def __str__(self) -> str:  # pragma: no cover (trivial)
        return self.name


ColumnRole = Union[FixedRole, Dimension]

# OrgCapabilities で許可されない場合に集計フィールドへ読み替えられるロール
RESTRICTED_ROLES = frozenset({FixedRole.DIVISION, FixedRole.CLUSTER, FixedRole.LIFECYCLE_PHASE})

# 複数列に割り当て可能なロール (それ以外はすべて排他)
MULTI_COLUMN_ROLES = frozenset({FixedRole.DATE, FixedRole.IGNORE})

_LABEL_LOOKUP = {role.value.lower(): role for role in FixedRole}
# AI suggestions and older mappings use a few alternate spellings
_LABEL_LOOKUP.update({
    "materialcode": FixedRole.MATERIAL_CODE,
    "material_code": FixedRole.MATERIAL_CODE,
    "sku": FixedRole.MATERIAL_CODE,
    "lifecycle": FixedRole.LIFECYCLE_PHASE,
    "lifecyclephase": FixedRole.LIFECYCLE_PHASE,
    "lifecycle_phase": FixedRole.LIFECYCLE_PHASE,
})


def parse_role(value: ColumnRole | str) -> ColumnRole:
    """Convert an external role label into a ColumnRole.

    Fixed labels are matched case-insensitively; any other non-empty string is
    a Dimension with that exact name. Empty labels mean Ignore.
    """
    if isinstance(value, (FixedRole, Dimension)):
        return value
    text = str(value).strip()
    if not text:
        return FixedRole.IGNORE
    fixed = _LABEL_LOOKUP.get(text.lower())
    if fixed is not None:
        return fixed
    return Dimension(text)


def role_label(role: ColumnRole) -> str:
    """Label used as the output key / display name for a role."""
    if isinstance(role, FixedRole):
        return role.value
    return role.name


def is_dimension_role(role: ColumnRole) -> bool:
    """True for roles whose raw values are copied onto normalized records."""
    if isinstance(role, Dimension):
        return True
    return role in RESTRICTED_ROLES
