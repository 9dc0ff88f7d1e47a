from __future__ import annotations

from collections.abc import Sequence

from ..models.column_role import ColumnRole, FixedRole
from ..models.org_capabilities import OrgCapabilities
from .errors import StructuralValidationError

"""Role completeness gate run before a dataset is handed to persistence."""

__all__ = [
    "required_roles",
    "collect_role_errors",
    "validate_roles",
]


def required_roles(org: OrgCapabilities) -> list[FixedRole]:
    roles = [FixedRole.MATERIAL_CODE]
    if org.has_multiple_divisions and not org.division_selected_out_of_band:
        roles.append(FixedRole.DIVISION)
    if org.has_multiple_clusters:
        roles.append(FixedRole.CLUSTER)
    if org.enable_lifecycle_tracking:
        roles.append(FixedRole.LIFECYCLE_PHASE)
    return roles


def collect_role_errors(roles: Sequence[ColumnRole], org: OrgCapabilities) -> list[str]:
    """All missing-role messages (empty list when complete)."""
    present = set(roles)
    return [
        f"Missing required column role: {role.value}"
        for role in required_roles(org)
        if role not in present
    ]


def validate_roles(roles: Sequence[ColumnRole], org: OrgCapabilities) -> None:
    errors = collect_role_errors(roles, org)
    if errors:
        raise StructuralValidationError(errors)
