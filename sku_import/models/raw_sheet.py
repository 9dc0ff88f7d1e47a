from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

"""RawSheet model: header strings plus rows keyed by header.

Built from a cell matrix (first row = header). Blank header cells get a
positional name and duplicates get ``_2``, ``_3`` suffixes so every row maps
the exact header set of the sheet.
"""

__all__ = [
    "RawSheet",
    "unique_headers",
]


def unique_headers(raw_headers: Sequence[str]) -> tuple[str, ...]:
    """Strip, name blank cells ``Column N`` and de-duplicate header names."""
    seen: dict[str, int] = {}
    result: list[str] = []
    for idx, raw in enumerate(raw_headers):
        name = str(raw).strip() or f"Column {idx + 1}"
        if name in seen:
            seen[name] += 1
            candidate = f"{name}_{seen[name]}"
            while candidate in seen:
                seen[name] += 1
                candidate = f"{name}_{seen[name]}"
            name = candidate
        seen[name] = seen.get(name, 1)
        result.append(name)
    return tuple(result)


@dataclass(frozen=True)
class RawSheet:
    """Ordered headers and rows of raw string cells."""
    headers: tuple[str, ...]
    rows: tuple[dict[str, str], ...]

    @staticmethod
    def from_matrix(matrix: Sequence[Sequence[str]]) -> RawSheet:
        if not matrix:
            return RawSheet(headers=(), rows=())
        width = max(len(r) for r in matrix)
        headers = unique_headers(list(matrix[0]) + [""] * (width - len(matrix[0])))
        rows: list[dict[str, str]] = []
        for raw in matrix[1:]:
            cells = list(raw) + [""] * (width - len(raw))
            rows.append({h: ("" if c is None else str(c)) for h, c in zip(headers, cells)})
        return RawSheet(headers=headers, rows=tuple(rows))

    def to_matrix(self) -> list[list[str]]:
        return [list(self.headers)] + [[row[h] for h in self.headers] for row in self.rows]

    def column_values(self, index: int) -> list[str]:
        header = self.headers[index]
        return [row[header] for row in self.rows]

    @property
    def width(self) -> int:
        return len(self.headers)

    def __len__(self) -> int:
        return len(self.rows)
