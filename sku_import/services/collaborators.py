from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from ..models.column_role import ColumnRole, role_label
from ..models.normalized_record import NormalizedRecord, OrgEntities
from ..models.processing_result import ImportOutcome
from .errors import CollaboratorError
from .normalizer import records_to_frame
from .summary import build_summary

"""External collaborator interfaces and the local JSON dataset store.

The engine only talks to persistence and AI assistance through these
protocols. Failures are terminal for the attempt (no retry here).
"""

__all__ = [
    "AiSuggestion",
    "AiAssistant",
    "PersistenceCollaborator",
    "JsonDatasetStore",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AiSuggestion:
    """Candidate produced by the AI backend.

    ``transformed_data`` is an optional re-shaped matrix (header row first);
    ``column_roles`` maps header -> role label (or list of labels).
    """
    column_roles: Mapping[str, str | Sequence[str]] = field(default_factory=dict)
    transformed_data: Sequence[Sequence[str]] | None = None


class AiAssistant(Protocol):
    def suggest(self, csv_text: str) -> AiSuggestion: ...


class PersistenceCollaborator(Protocol):
    def import_records(
        self,
        records: Sequence[NormalizedRecord],
        entities: OrgEntities,
        file_name: str,
        content_hash: str,
        column_roles: Mapping[str, ColumnRole] | None = None,
    ) -> ImportOutcome: ...


class JsonDatasetStore:
    """Writes each accepted dataset to ``<stem>-<hash8>-processed.json``."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)

    def path_for(self, file_name: str, content_hash: str) -> Path:
        stem = Path(file_name).stem
        return self.output_dir / f"{stem}-{content_hash[:8]}-processed.json"

    def import_records(
        self,
        records: Sequence[NormalizedRecord],
        entities: OrgEntities,
        file_name: str,
        content_hash: str,
        column_roles: Mapping[str, ColumnRole] | None = None,
    ) -> ImportOutcome:
        summary = build_summary(records)
        frame = records_to_frame(records)
        payload: dict[str, Any] = {
            "source_file": file_name,
            "content_hash": content_hash,
            "columns": list(frame.columns),
            "column_roles": {h: role_label(r) for h, r in (column_roles or {}).items()},
            "data": frame.to_dict(orient="records"),
            "entities": {
                "divisions": list(entities.divisions),
                "clusters": list(entities.clusters),
                "lifecycle_phases": list(entities.lifecycle_phases),
                "division_cluster_map": {k: list(v) for k, v in entities.division_cluster_map.items()},
            },
            "summary": {
                "sku_count": summary.sku_count,
                "date_range": list(summary.date_range),
                "total_periods": summary.total_periods,
                "frequency": {
                    "type": summary.frequency.type,
                    "interval": summary.frequency.interval,
                    "seasonal_period": summary.frequency.seasonal_period,
                },
            },
        }
        path = self.path_for(file_name, content_hash)
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        except OSError as e:
            raise CollaboratorError(f"failed to write dataset '{path}': {e}") from e
        logger.debug("dataset written: %s (%d records)", path, len(records))
        return ImportOutcome(dataset_id=path.name, summary=summary)
