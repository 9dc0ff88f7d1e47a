from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

"""NormalizedRecord: one (SKU, period) pair in long format.

Created only by the Wide-to-Long normalizer and never mutated afterwards.
"""

__all__ = [
    "NormalizedRecord",
    "OrgEntities",
]

MATERIAL_CODE_KEY = "Material Code"
DESCRIPTION_KEY = "Description"
DATE_KEY = "Date"
SALES_KEY = "Sales"


@dataclass(frozen=True)
class NormalizedRecord:
    """Single long-format row.

    ``date`` is ISO ``yyyy-mm-dd`` when the period header parsed, otherwise the
    raw header text. Dimension values are raw strings (no numeric coercion, so
    values like ``"03"`` survive).
    """
    material_code: str
    date: str
    sales: float
    description: str | None = None
    dimensions: tuple[tuple[str, str], ...] = ()

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {MATERIAL_CODE_KEY: self.material_code}
        if self.description is not None:
            out[DESCRIPTION_KEY] = self.description
        out[DATE_KEY] = self.date
        out[SALES_KEY] = self.sales
        for label, value in self.dimensions:
            out[label] = value
        return out

    def dimension(self, label: str) -> str | None:
        for key, value in self.dimensions:
            if key == label:
                return value
        return None


@dataclass(frozen=True)
class OrgEntities:
    """Organizational values found in the sheet (side artifact of classification)."""
    divisions: tuple[str, ...] = ()
    clusters: tuple[str, ...] = ()
    lifecycle_phases: tuple[str, ...] = ()
    # division -> clusters seen with it
    division_cluster_map: dict[str, tuple[str, ...]] = field(default_factory=dict)
