from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""Result models for single imports and batch runs.

ImportSummary / ImportOutcome describe one accepted dataset; FileStat and
ProcessingResult aggregate a batch run over a source directory.
"""

__all__ = [
    "DateFrequency",
    "ImportSummary",
    "ImportOutcome",
    "FileStat",
    "ProcessingResult",
]


@dataclass(frozen=True)
class DateFrequency:
    """Inferred sampling frequency of the period columns."""
    type: str  # daily / weekly / monthly / quarterly / yearly
    interval: int  # 代表的な日数
    seasonal_period: int


@dataclass(frozen=True)
class ImportSummary:
    """Summary returned together with the dataset identifier."""
    sku_count: int
    date_range: tuple[str, str]  # (first, last) or ("N/A", "N/A")
    total_periods: int
    frequency: DateFrequency


@dataclass(frozen=True)
class ImportOutcome:
    """What the persistence collaborator hands back for an accepted import."""
    dataset_id: str
    summary: ImportSummary


@dataclass(frozen=True)
class FileStat:
    """Per-file statistics of a batch run."""
    file_name: str
    status: str  # success / failed / deferred
    record_count: int
    elapsed_seconds: float
    dataset_id: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class ProcessingResult:
    """Aggregated results of a batch run, used for the SUMMARY line."""
    success_files: int
    failed_files: int
    deferred_files: int
    total_records: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    throughput_records_per_sec: float
    file_stats: list[FileStat] | None = None

    @property
    def total_files(self) -> int:
        return self.success_files + self.failed_files + self.deferred_files
