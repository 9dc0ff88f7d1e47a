from __future__ import annotations

from dataclasses import dataclass

"""ImportedCsvRecord bookkeeping for sequential imports in one setup session.

Used only for duplicate / overwrite detection; the session keeps these in an
immutable tuple and replaces the tuple instead of editing entries.
"""

__all__ = [
    "ImportedCsvRecord",
]


@dataclass(frozen=True)
class ImportedCsvRecord:
    """One CSV already imported during the session."""
    file_name: str
    divisions: tuple[str, ...] = ()
    clusters: tuple[str, ...] = ()
    division_name: str | None = None  # 列なし division import 時に選択された division
    content_hash: str | None = None

    @property
    def covered_divisions(self) -> frozenset[str]:
        """Divisions this import provides data for (column values or out-of-band name)."""
        names = set(self.divisions)
        if self.division_name:
            names.add(self.division_name)
        return frozenset(names)
