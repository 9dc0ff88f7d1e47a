from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .column_role import FixedRole

"""Organization configuration snapshot consumed by the classifier and validator.

The engine never mutates it; callers build a new snapshot when the
organization structure changes.
"""

__all__ = [
    "ImportLevel",
    "DivisionCsvType",
    "OrgCapabilities",
]


class ImportLevel(Enum):
    """Whether one sheet covers the whole company or each division imports its own."""
    COMPANY = "company"
    DIVISION = "division"


class DivisionCsvType(Enum):
    """For division-level imports: does the sheet carry its own division column?"""
    WITH_DIVISION_COLUMN = "withDivisionColumn"
    WITHOUT_DIVISION_COLUMN = "withoutDivisionColumn"


_BASE_ROLES = frozenset({
    FixedRole.MATERIAL_CODE,
    FixedRole.DESCRIPTION,
    FixedRole.DATE,
    FixedRole.IGNORE,
})


@dataclass(frozen=True)
class OrgCapabilities:
    """Read-only organizational structure flags."""
    has_multiple_divisions: bool = False
    has_multiple_clusters: bool = False
    enable_lifecycle_tracking: bool = False
    import_level: ImportLevel = ImportLevel.COMPANY
    division_csv_type: DivisionCsvType | None = None

    @property
    def division_selected_out_of_band(self) -> bool:
        """Division is chosen per file outside the sheet (no division column)."""
        return (
            self.import_level is ImportLevel.DIVISION
            and self.division_csv_type is DivisionCsvType.WITHOUT_DIVISION_COLUMN
        )

    def allowed_roles(self) -> frozenset[FixedRole]:
        """Fixed roles that may be assigned under this configuration."""
        roles = set(_BASE_ROLES)
        if self.has_multiple_divisions and not self.division_selected_out_of_band:
            roles.add(FixedRole.DIVISION)
        if self.has_multiple_clusters:
            roles.add(FixedRole.CLUSTER)
        if self.enable_lifecycle_tracking:
            roles.add(FixedRole.LIFECYCLE_PHASE)
        return frozenset(roles)

    def is_allowed(self, role: FixedRole) -> bool:
        return role in self.allowed_roles()

    @staticmethod
    def from_mapping(data: dict[str, Any]) -> OrgCapabilities:
        """Build from the ``organization`` section of the YAML config."""
        level = ImportLevel(data.get("import_level", ImportLevel.COMPANY.value))
        csv_type_raw = data.get("division_csv_type")
        csv_type = DivisionCsvType(csv_type_raw) if csv_type_raw else None
        if level is ImportLevel.DIVISION and csv_type is None:
            csv_type = DivisionCsvType.WITH_DIVISION_COLUMN
        return OrgCapabilities(
            has_multiple_divisions=bool(data.get("has_multiple_divisions", False)),
            has_multiple_clusters=bool(data.get("has_multiple_clusters", False)),
            enable_lifecycle_tracking=bool(data.get("enable_lifecycle_tracking", False)),
            import_level=level,
            division_csv_type=csv_type,
        )
