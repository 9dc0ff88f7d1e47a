from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

from ..models.processing_result import FileStat

"""Batch progress: per-status file tallies, shown as a tqdm bar on a TTY.

The tallies are kept whether or not a bar is drawn; the orchestrator reads
them back for the run summary. In a non-TTY environment (CI, redirected
output) no bar is created so the log stays free of control sequences.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    """Counts imported / failed / deferred CSV files and their records."""

    def __init__(self, total_files: int, *, description: str = "Importing CSV files") -> None:
        self.total_files = total_files
        self.description = description
        self.current_file = 0
        self.counts: dict[str, int] = {}
        self.total_records = 0
        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None = None
        if self.enabled:
            self.pbar = tqdm(
                total=total_files,
                desc=description,
                unit="file",
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )

    def start_file(self, file_path: Path) -> None:
        self.current_file += 1
        if self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({file_path.name})")

    def record(self, stat: FileStat) -> None:
        """Tally a finished file and advance the bar.

        Args:
            stat: outcome of the file started last; its ``status`` is the
                tally key and its ``record_count`` adds to ``total_records``.
        """
        self.counts[stat.status] = self.counts.get(stat.status, 0) + 1
        self.total_records += stat.record_count
        if self.pbar is None:
            return
        # 0 件のステータスは表示しない
        self.pbar.set_postfix({k: v for k, v in sorted(self.counts.items()) if v}, records=self.total_records)
        self.pbar.update(1)
        self.pbar.set_description(self.description)

    def count(self, status: str) -> int:
        return self.counts.get(status, 0)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
