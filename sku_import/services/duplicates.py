from __future__ import annotations

import hashlib
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from ..models.imported_csv import ImportedCsvRecord
from ..models.org_capabilities import ImportLevel, OrgCapabilities

"""Duplicate / overwrite detection across imports of one setup session.

Company-level imports hold a single dataset: any new import supersedes the
previous ones. Division-level imports only replace the entries whose divisions
overlap with the new sheet. Either way the caller must confirm; cancelling
keeps the bookkeeping tuple as it was.
"""

__all__ = [
    "DuplicateKind",
    "DuplicateDecision",
    "content_hash",
    "check_duplicates",
    "register_import",
    "remove_import",
]

# 保存先ファイル名にも使うため短縮
_HASH_LENGTH = 30


class DuplicateKind(Enum):
    NONE = "none"
    SUPERSEDE = "supersede"
    REPLACE_DIVISION = "replace_division"


@dataclass(frozen=True)
class DuplicateDecision:
    kind: DuplicateKind
    superseded: tuple[ImportedCsvRecord, ...] = ()
    overlapping_divisions: tuple[str, ...] = ()
    identical_content: tuple[str, ...] = ()  # 同一ハッシュの既存ファイル名

    @property
    def requires_confirmation(self) -> bool:
        return self.kind is not DuplicateKind.NONE

    @property
    def message(self) -> str:
        if self.kind is DuplicateKind.SUPERSEDE:
            names = ", ".join(r.file_name for r in self.superseded)
            text = f"importing will replace the existing company data ({names})"
        elif self.kind is DuplicateKind.REPLACE_DIVISION:
            text = (
                "importing will replace data for division(s) "
                f"{', '.join(self.overlapping_divisions)}"
            )
        else:
            text = "no existing data is affected"
        if self.identical_content:
            text += f"; identical content already imported as {', '.join(self.identical_content)}"
        return text


def content_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:_HASH_LENGTH]


def _identical(existing: Sequence[ImportedCsvRecord], candidate: ImportedCsvRecord) -> tuple[str, ...]:
    if not candidate.content_hash:
        return ()
    return tuple(r.file_name for r in existing if r.content_hash == candidate.content_hash)


def check_duplicates(
    existing: Sequence[ImportedCsvRecord],
    candidate: ImportedCsvRecord,
    org: OrgCapabilities,
) -> DuplicateDecision:
    identical = _identical(existing, candidate)
    if not existing:
        return DuplicateDecision(DuplicateKind.NONE, identical_content=identical)

    if org.import_level is ImportLevel.COMPANY:
        return DuplicateDecision(
            DuplicateKind.SUPERSEDE,
            superseded=tuple(existing),
            identical_content=identical,
        )

    wanted = candidate.covered_divisions
    superseded = tuple(r for r in existing if r.covered_divisions & wanted)
    if not superseded:
        return DuplicateDecision(DuplicateKind.NONE, identical_content=identical)
    overlap: set[str] = set()
    for r in superseded:
        overlap |= r.covered_divisions & wanted
    return DuplicateDecision(
        DuplicateKind.REPLACE_DIVISION,
        superseded=superseded,
        overlapping_divisions=tuple(sorted(overlap)),
        identical_content=identical,
    )


def register_import(
    existing: tuple[ImportedCsvRecord, ...],
    candidate: ImportedCsvRecord,
    decision: DuplicateDecision,
    confirm: bool,
) -> tuple[ImportedCsvRecord, ...]:
    """New bookkeeping tuple after an import (unchanged when not confirmed)."""
    if decision.requires_confirmation and not confirm:
        return existing
    kept = tuple(r for r in existing if r not in decision.superseded)
    return kept + (candidate,)


def remove_import(existing: tuple[ImportedCsvRecord, ...], file_name: str) -> tuple[ImportedCsvRecord, ...]:
    return tuple(r for r in existing if r.file_name != file_name)
