from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .date_format import (
    DETECTION_YEARS,
    ROW_LABEL_DATE_FORMATS,
    date_candidates,
    detect_date_format,
    is_date,
    parse_date,
)

"""Orientation detection: are periods laid out as columns or as rows?

The canonical orientation has periods as columns and SKUs as rows. When the
first column carries more period labels than the header row, the whole matrix
is transposed before roles are assigned.
"""

__all__ = [
    "OrientationResult",
    "period_share",
    "header_cells",
    "first_column_cells",
    "detect_orientation",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrientationResult:
    transposed: bool
    date_format: str
    header_share: float
    column_share: float


def header_cells(matrix: Sequence[Sequence[str]]) -> list[str]:
    """First row without the corner cell."""
    if not matrix:
        return []
    return [str(c) for c in matrix[0][1:]]


def first_column_cells(matrix: Sequence[Sequence[str]]) -> list[str]:
    """First column without the corner cell."""
    return [str(r[0]) if r else "" for r in matrix[1:]]


def period_share(values: Sequence[str], date_format: str) -> float:
    """Share of non-empty ``values`` that parse as periods under ``date_format``."""
    non_empty = [v for v in values if str(v).strip()]
    if not non_empty:
        return 0.0
    return sum(1 for v in non_empty if is_date(v, date_format)) / len(non_empty)


def _detected_share(values: Sequence[str], date_format: str) -> float:
    non_empty = [v for v in values if str(v).strip()]
    if not non_empty:
        return 0.0
    hits = 0
    for v in non_empty:
        parsed = parse_date(v, date_format)
        if parsed is not None and parsed.year in DETECTION_YEARS:
            hits += 1
    return hits / len(non_empty)


def detect_orientation(
    matrix: Sequence[Sequence[str]],
    date_format: str | None = None,
) -> OrientationResult:
    """Decide whether ``matrix`` must be transposed.

    ``date_format`` is the locked format, if any. Without one, the best format
    is detected on each axis separately and the axis with the larger period
    share wins (ties keep the header row, i.e. no transpose). Bare years are
    not considered for the first column, where they are indistinguishable
    from numeric SKU codes.
    """
    headers = header_cells(matrix)
    first_col = first_column_cells(matrix)
    if date_format is not None:
        h_fmt = c_fmt = date_format
        h_share = period_share(headers, h_fmt)
        c_share = period_share(first_col, c_fmt)
    else:
        h_fmt = detect_date_format(date_candidates(headers))
        c_fmt = detect_date_format(date_candidates(first_col), ROW_LABEL_DATE_FORMATS)
        h_share = _detected_share(headers, h_fmt)
        c_share = _detected_share(first_col, c_fmt)
    transposed = c_share > h_share
    chosen = c_fmt if transposed else h_fmt
    logger.debug(
        "orientation: header_share=%.2f column_share=%.2f transposed=%s date_format=%s",
        h_share, c_share, transposed, chosen,
    )
    return OrientationResult(
        transposed=transposed,
        date_format=chosen,
        header_share=h_share,
        column_share=c_share,
    )
