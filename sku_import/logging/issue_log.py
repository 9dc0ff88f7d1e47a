from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path

"""Data-quality issue log (JSON Lines).

- Fixed key set per line: timestamp, file, column, row, issue_type, message
- One file per run: ``logs/issues-YYYYMMDD-HHMMSS.log`` (UTC), created on first flush
- Records are buffered and written in one go
"""

__all__ = [
    "IssueRecord",
    "IssueLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


@dataclass(frozen=True)
class IssueRecord:
    """One data-quality finding.

    ``row`` is the 1-based data row, or -1 for file/column level issues.
    ``issue_type`` is UPPER_SNAKE (e.g. UNPARSED_PERIOD_HEADER, ROLE_RESTRICTED).
    """
    timestamp: str
    file: str
    column: str
    row: int
    issue_type: str
    message: str

    @staticmethod
    def create(file: str, column: str, row: int, issue_type: str, message: str) -> IssueRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return IssueRecord(
            timestamp=ts,
            file=file,
            column=column,
            row=row,
            issue_type=issue_type,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)


class IssueLogBuffer:
    """In-memory buffer of IssueRecords; ``flush`` appends them as JSON Lines."""

    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[IssueRecord] = []
        self._logs_dir = logs_dir or LOGS_DIR
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"issues-{stamp}.log"
        return self._file_path

    @property
    def records(self) -> tuple[IssueRecord, ...]:
        return tuple(self._records)

    def append(self, record: IssueRecord) -> None:
        self._records.append(record)

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records; returns the file path, or None when empty."""
        if not self._records:
            return None
        fp = self.file_path
        fp.parent.mkdir(parents=True, exist_ok=True)
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
