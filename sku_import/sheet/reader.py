from __future__ import annotations

import io
from collections.abc import Sequence
from pathlib import Path

import pandas as pd

from ..models.raw_sheet import RawSheet

"""CSV reader: separator detection, tokenising and matrix clean-up.

- The separator is inferred from the first text line only.
- Every cell is kept as a raw string (no NA / numeric coercion); number and
  date interpretation happens later under the active FormatSettings.
- Empty leading/trailing rows and columns are trimmed before a RawSheet is built.
"""

__all__ = [
    "SEPARATORS",
    "SheetReadError",
    "detect_separator",
    "first_line",
    "decode_csv_bytes",
    "read_csv_text",
    "parse_matrix",
    "trim_matrix",
    "transpose_matrix",
    "build_sheet",
]

# 候補順 = タイブレーク順 (先頭のカンマ優先)
SEPARATORS: tuple[str, ...] = (",", ";", "\t", "|")


class SheetReadError(Exception):
    """Raised when the file cannot be read or tokenised."""


def detect_separator(line: str) -> str:
    """Pick the candidate that splits ``line`` into the most fields.

    Ties resolve to the earlier candidate, so a single-column line yields comma.
    """
    best = SEPARATORS[0]
    best_count = 0
    for sep in SEPARATORS:
        count = len(line.split(sep))
        if count > best_count:
            best = sep
            best_count = count
    return best


def first_line(text: str) -> str:
    """First non-empty text line (BOM already stripped)."""
    for line in text.splitlines():
        if line.strip():
            return line
    return ""


def decode_csv_bytes(data: bytes) -> str:
    """Decode uploaded bytes as text; a UTF-8 BOM is dropped."""
    return data.decode("utf-8-sig", errors="replace")


def read_csv_text(path: Path) -> str:
    """Buffer the whole file in memory (no streaming path)."""
    try:
        return decode_csv_bytes(path.read_bytes())
    except OSError as e:
        raise SheetReadError(f"cannot read '{path}': {e}") from e


def parse_matrix(text: str, separator: str) -> list[list[str]]:
    """Tokenise CSV text into a rectangular matrix of raw strings."""
    lines = [ln for ln in text.splitlines() if ln.strip()]
    if not lines:
        return []
    # 行ごとに列数が異なる CSV に備えて最大列数で names を固定 (余剰列は trim で除去)
    width = max(len(ln.split(separator)) for ln in lines)
    try:
        df = pd.read_csv(
            io.StringIO(text),
            sep=separator,
            header=None,
            names=list(range(width)),
            dtype=str,
            keep_default_na=False,
            na_filter=False,
            skip_blank_lines=True,
            engine="python",
        )
    except (pd.errors.ParserError, ValueError) as e:
        raise SheetReadError(f"CSV parsing error: {e}") from e
    return df.fillna("").astype(str).values.tolist()


def _is_blank(cell: object) -> bool:
    return cell is None or str(cell).strip() == ""


def trim_matrix(matrix: Sequence[Sequence[str]]) -> list[list[str]]:
    """Remove empty rows/columns from the outer edges of the matrix."""
    if not matrix:
        return []
    width = max(len(r) for r in matrix)
    padded = [list(r) + [""] * (width - len(r)) for r in matrix]
    top, bottom = 0, len(padded) - 1
    while top <= bottom and all(_is_blank(c) for c in padded[top]):
        top += 1
    while bottom >= top and all(_is_blank(c) for c in padded[bottom]):
        bottom -= 1
    if top > bottom:
        return []
    body = padded[top:bottom + 1]
    left, right = 0, width - 1
    while left <= right and all(_is_blank(row[left]) for row in body):
        left += 1
    while right >= left and all(_is_blank(row[right]) for row in body):
        right -= 1
    return [row[left:right + 1] for row in body]


def transpose_matrix(matrix: Sequence[Sequence[str]]) -> list[list[str]]:
    """Swap rows and columns; the header row becomes the first column."""
    if not matrix:
        return []
    width = max(len(r) for r in matrix)
    padded = [list(r) + [""] * (width - len(r)) for r in matrix]
    return [list(col) for col in zip(*padded)]


def build_sheet(matrix: Sequence[Sequence[str]], transposed: bool = False) -> RawSheet:
    """Materialise the canonical-orientation RawSheet from a trimmed matrix."""
    source = transpose_matrix(matrix) if transposed else matrix
    return RawSheet.from_matrix(source)
