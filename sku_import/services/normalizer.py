from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import pandas as pd

from ..models.column_role import ColumnRole, FixedRole, is_dimension_role, role_label
from ..models.format_settings import FormatSettings
from ..models.normalized_record import (
    DATE_KEY,
    DESCRIPTION_KEY,
    MATERIAL_CODE_KEY,
    SALES_KEY,
    NormalizedRecord,
    OrgEntities,
)
from ..models.raw_sheet import RawSheet
from .date_format import to_iso
from .date_range import date_range
from .number_format import parse_number

"""Wide-to-long normalization.

One record per (data row, Date column inside the active range). The function
is pure: same sheet, roles and settings give the same records in the same
order.
"""

__all__ = [
    "NormalizationResult",
    "normalize",
    "parse_sales",
    "records_to_frame",
    "extract_org_entities",
]


@dataclass(frozen=True)
class NormalizationResult:
    records: tuple[NormalizedRecord, ...]
    # 日付として解釈できず生テキストのまま出力した期間ヘッダ
    unparsed_headers: tuple[str, ...] = ()

    def __len__(self) -> int:
        return len(self.records)


def parse_sales(value: str, number_format: str) -> float:
    """Sales value; empty, unparseable or non-finite cells count as 0."""
    parsed = parse_number(value, number_format)
    return parsed if parsed is not None else 0.0


def _single_index(roles: Sequence[ColumnRole], role: FixedRole) -> int | None:
    for i, r in enumerate(roles):
        if r is role:
            return i
    return None


def normalize(sheet: RawSheet, roles: Sequence[ColumnRole], settings: FormatSettings) -> NormalizationResult:
    """Turn the wide sheet into long-format records."""
    if len(roles) != sheet.width:
        raise ValueError(f"roles ({len(roles)}) do not align with headers ({sheet.width})")
    mc_idx = _single_index(roles, FixedRole.MATERIAL_CODE)
    bounds = date_range(roles)
    if mc_idx is None or bounds is None:
        return NormalizationResult(records=())

    headers = sheet.headers
    mc_header = headers[mc_idx]
    desc_idx = _single_index(roles, FixedRole.DESCRIPTION)
    desc_header = headers[desc_idx] if desc_idx is not None else None
    dim_columns = [(role_label(r), headers[i]) for i, r in enumerate(roles) if is_dimension_role(r)]

    periods: list[tuple[str, str]] = []
    unparsed: list[str] = []
    for i in range(bounds[0], bounds[1] + 1):
        if roles[i] is not FixedRole.DATE:
            continue
        header = headers[i]
        iso = to_iso(header, settings.date_format)
        if iso is None:
            unparsed.append(header)
            iso = header
        periods.append((header, iso))

    records: list[NormalizedRecord] = []
    for row in sheet.rows:
        code = row[mc_header]
        if not code.strip():
            continue
        description = row[desc_header] if desc_header is not None else None
        dims = tuple((label, row[h]) for label, h in dim_columns)
        for header, iso in periods:
            records.append(
                NormalizedRecord(
                    material_code=code,
                    date=iso,
                    sales=parse_sales(row[header], settings.number_format),
                    description=description,
                    dimensions=dims,
                )
            )
    return NormalizationResult(records=tuple(records), unparsed_headers=tuple(unparsed))


def records_to_frame(records: Sequence[NormalizedRecord]) -> pd.DataFrame:
    """Long-format DataFrame; dimension columns follow the fixed ones."""
    rows = [r.to_dict() for r in records]
    fixed = [MATERIAL_CODE_KEY, DESCRIPTION_KEY, DATE_KEY, SALES_KEY]
    if not rows:
        return pd.DataFrame(columns=[MATERIAL_CODE_KEY, DATE_KEY, SALES_KEY])
    df = pd.DataFrame(rows)
    extra = [c for c in df.columns if c not in fixed]
    ordered = [c for c in fixed if c in df.columns] + extra
    return df[ordered]


def _unique(values: Sequence[str]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for v in values:
        text = v.strip()
        if text and text not in seen:
            seen[text] = None
    return tuple(seen)


def extract_org_entities(sheet: RawSheet, roles: Sequence[ColumnRole]) -> OrgEntities:
    """Division / cluster / lifecycle values present in the sheet (first-seen order)."""
    div_idx = _single_index(roles, FixedRole.DIVISION)
    clu_idx = _single_index(roles, FixedRole.CLUSTER)
    lc_idx = _single_index(roles, FixedRole.LIFECYCLE_PHASE)

    divisions = _unique(sheet.column_values(div_idx)) if div_idx is not None else ()
    clusters = _unique(sheet.column_values(clu_idx)) if clu_idx is not None else ()
    phases = _unique(sheet.column_values(lc_idx)) if lc_idx is not None else ()

    mapping: dict[str, dict[str, None]] = {}
    if div_idx is not None and clu_idx is not None:
        div_h, clu_h = sheet.headers[div_idx], sheet.headers[clu_idx]
        for row in sheet.rows:
            d, c = row[div_h].strip(), row[clu_h].strip()
            if d and c:
                mapping.setdefault(d, {})[c] = None
    return OrgEntities(
        divisions=divisions,
        clusters=clusters,
        lifecycle_phases=phases,
        division_cluster_map={d: tuple(cs) for d, cs in mapping.items()},
    )
