from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from ..models.column_role import (
    MULTI_COLUMN_ROLES,
    RESTRICTED_ROLES,
    ColumnRole,
    Dimension,
    FixedRole,
    parse_role,
    role_label,
)
from ..models.org_capabilities import OrgCapabilities
from ..models.raw_sheet import RawSheet
from .date_format import is_date
from .errors import DateRoleError

"""Column role classification.

Roles are kept as a tuple aligned with ``sheet.headers``. Every assignment
(heuristic seed, AI suggestion or user edit) goes through ``assign_role`` so
the same availability / Date / exclusivity rules apply whatever the source.

Outcome of an assignment:
- ``applied``: requested role stored as is
- ``restricted``: role not enabled for the organization, stored as an
  aggregatable field named after the header (Ignore for period headers)
- ``conflict``: exclusive role already held by another column, stored as the
  header-named field (or Ignore)
"""

__all__ = [
    "DEFAULT_DATE_ROLE_THRESHOLD",
    "RoleAssignment",
    "date_value_ratio",
    "validate_date_column",
    "assign_role",
    "seed_roles",
    "roles_from_suggestion",
]

logger = logging.getLogger(__name__)

DEFAULT_DATE_ROLE_THRESHOLD = 0.5

APPLIED = "applied"
RESTRICTED = "restricted"
CONFLICT = "conflict"

# ヘッダ部分一致によるシード (大文字小文字無視)
_SUBSTRING_SEEDS: tuple[tuple[str, FixedRole], ...] = (
    ("division", FixedRole.DIVISION),
    ("cluster", FixedRole.CLUSTER),
    ("lifecycle", FixedRole.LIFECYCLE_PHASE),
)


@dataclass(frozen=True)
class RoleAssignment:
    roles: tuple[ColumnRole, ...]
    requested: ColumnRole
    applied: ColumnRole
    outcome: str

    @property
    def reinterpreted(self) -> bool:
        return self.outcome != APPLIED


def date_value_ratio(values: Sequence[str], date_format: str) -> float:
    non_empty = [v for v in values if str(v).strip()]
    if not non_empty:
        return 0.0
    return sum(1 for v in non_empty if is_date(v, date_format)) / len(non_empty)


def validate_date_column(
    sheet: RawSheet,
    index: int,
    date_format: str,
    threshold: float = DEFAULT_DATE_ROLE_THRESHOLD,
) -> None:
    """Raise DateRoleError unless column ``index`` looks like a period column.

    A period column has a header that parses under ``date_format`` or enough
    non-empty cells that do.
    """
    header = sheet.headers[index]
    if is_date(header, date_format):
        return
    ratio = date_value_ratio(sheet.column_values(index), date_format)
    if ratio < threshold:
        raise DateRoleError(header, date_format, ratio, threshold)


def _taken_by_other(roles: Sequence[ColumnRole], index: int, role: ColumnRole) -> bool:
    return any(r == role for i, r in enumerate(roles) if i != index)


def _header_fallback(roles: Sequence[ColumnRole], index: int, header: str, date_format: str) -> ColumnRole:
    if is_date(header, date_format):
        return FixedRole.IGNORE
    dim = Dimension(header)
    if _taken_by_other(roles, index, dim):
        return FixedRole.IGNORE
    return dim


def assign_role(
    roles: Sequence[ColumnRole],
    index: int,
    role: ColumnRole | str,
    sheet: RawSheet,
    org: OrgCapabilities,
    date_format: str,
    threshold: float = DEFAULT_DATE_ROLE_THRESHOLD,
) -> RoleAssignment:
    """Assign ``role`` to column ``index`` and return the new role tuple.

    Every source of roles (seed, AI suggestion, user edit) comes through here.
    Availability is checked first, then the Date threshold, then exclusivity.

    Args:
        roles: current roles, aligned with ``sheet.headers``.
        index: column to change.
        role: ColumnRole or external label (see ``parse_role``).
        sheet: canonical sheet the roles describe.
        org: enabled optional roles and import level.
        date_format: format period headers are parsed with.
        threshold: minimum share of date cells for a Date column whose
            header is not itself a period.

    Returns:
        RoleAssignment; ``outcome`` is applied, restricted or conflict.

    Raises:
        DateRoleError: the Date role was requested for a non-period column;
            ``roles`` is left as it was.
        IndexError: ``index`` is outside the sheet.
    """
    if not 0 <= index < sheet.width:
        raise IndexError(f"column index {index} out of range (0..{sheet.width - 1})")
    requested = parse_role(role)
    header = sheet.headers[index]
    applied: ColumnRole = requested
    outcome = APPLIED

    if requested in RESTRICTED_ROLES and not org.is_allowed(requested):  # type: ignore[arg-type]
        applied = _header_fallback(roles, index, header, date_format)
        outcome = RESTRICTED
        logger.info(
            "role '%s' is not enabled for this organization: column '%s' kept as '%s'",
            role_label(requested), header, role_label(applied),
        )
    elif requested is FixedRole.DATE:
        validate_date_column(sheet, index, date_format, threshold)
    elif requested not in MULTI_COLUMN_ROLES and _taken_by_other(roles, index, requested):
        applied = _header_fallback(roles, index, header, date_format)
        outcome = CONFLICT
        logger.debug(
            "role '%s' already assigned to another column: column '%s' kept as '%s'",
            role_label(requested), header, role_label(applied),
        )

    new_roles = list(roles)
    new_roles[index] = applied
    return RoleAssignment(roles=tuple(new_roles), requested=requested, applied=applied, outcome=outcome)


def _seed_for(index: int, header: str, date_format: str) -> ColumnRole:
    if index == 0:
        return FixedRole.MATERIAL_CODE
    # 2 列目でも期間ヘッダなら Description より Date を優先
    if is_date(header, date_format):
        return FixedRole.DATE
    if index == 1:
        return FixedRole.DESCRIPTION
    lowered = header.lower()
    for needle, seeded in _SUBSTRING_SEEDS:
        if needle in lowered:
            return seeded
    return FixedRole.IGNORE


def seed_roles(
    sheet: RawSheet,
    org: OrgCapabilities,
    date_format: str,
    threshold: float = DEFAULT_DATE_ROLE_THRESHOLD,
) -> tuple[ColumnRole, ...]:
    """Heuristic initial roles for a freshly loaded sheet.

    Column 0 is Material Code, column 1 Description unless its header is a
    period; period headers are Date; headers containing division / cluster /
    lifecycle get those roles. Everything else starts as Ignore.

    Returns:
        Role tuple aligned with ``sheet.headers``.
    """
    roles: tuple[ColumnRole, ...] = tuple(FixedRole.IGNORE for _ in sheet.headers)
    for idx, header in enumerate(sheet.headers):
        seeded = _seed_for(idx, header, date_format)
        if seeded is FixedRole.IGNORE:
            continue
        roles = assign_role(roles, idx, seeded, sheet, org, date_format, threshold).roles
    return roles


def _first_label(value: str | Sequence[str]) -> str:
    if isinstance(value, str):
        return value
    for item in value:
        if str(item).strip():
            return str(item)
    return ""


def roles_from_suggestion(
    sheet: RawSheet,
    suggestion: Mapping[str, str | Sequence[str]],
    org: OrgCapabilities,
    date_format: str,
    threshold: float = DEFAULT_DATE_ROLE_THRESHOLD,
) -> tuple[ColumnRole, ...]:
    """Roles from an external ``{header: label}`` mapping.

    Headers missing from the mapping are Ignore. A suggested Date that fails
    validation is downgraded to Ignore instead of raising.
    """
    roles: tuple[ColumnRole, ...] = tuple(FixedRole.IGNORE for _ in sheet.headers)
    for idx, header in enumerate(sheet.headers):
        label = suggestion.get(header)
        if label is None:
            continue
        try:
            roles = assign_role(roles, idx, _first_label(label), sheet, org, date_format, threshold).roles
        except DateRoleError as e:
            logger.info("suggested role ignored: %s", e)
    return roles
