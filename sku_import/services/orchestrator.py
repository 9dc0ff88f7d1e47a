from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

from ..config.loader import ImportConfig
from ..logging.issue_log import IssueLogBuffer, IssueRecord
from ..models.processing_result import FileStat, ProcessingResult
from ..sheet.reader import SheetReadError, read_csv_text
from .collaborators import JsonDatasetStore, PersistenceCollaborator
from .errors import CollaboratorError, DateRoleError, LargeFileDeferred, StructuralValidationError
from .progress import ProgressTracker
from .session import ImportSession

"""Batch orchestration: import every CSV of the source directory.

All files go through one ImportSession so duplicate / overwrite detection
spans the whole run. A file either succeeds, fails (recorded, run continues)
or is deferred to the external batch pipeline because of its size.
"""

__all__ = [
    "ProcessingError",
    "STATUS_SUCCESS",
    "STATUS_FAILED",
    "STATUS_DEFERRED",
    "scan_csv_files",
    "build_session",
    "process_all",
]

logger = logging.getLogger(__name__)

STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"
STATUS_DEFERRED = "deferred"

_ISSUE_TYPES = {
    SheetReadError: "READ_ERROR",
    DateRoleError: "DATE_ROLE_ERROR",
    CollaboratorError: "COLLABORATOR_ERROR",
}


class ProcessingError(Exception):
    """Fatal batch error (the run cannot start)."""


def scan_csv_files(directory: Path) -> list[Path]:
    """List the CSV files directly under ``directory``.

    Args:
        directory: source directory (not searched recursively).

    Returns:
        ``*.csv`` paths (suffix matched case-insensitively), sorted by name.

    Raises:
        ProcessingError: the directory is missing, not a directory, or
            cannot be listed.
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")
    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")
    try:
        return sorted(p for p in directory.iterdir() if p.is_file() and p.suffix.lower() == ".csv")
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e


def build_session(config: ImportConfig, issue_log: IssueLogBuffer | None = None) -> ImportSession:
    """One session for the whole run, with the configured formats and locks."""
    return ImportSession(
        config.organization,
        settings=config.formats,
        locks=config.locks,
        date_role_threshold=config.date_role_threshold,
        large_file_threshold=config.large_file_threshold,
        issue_log=issue_log,
    )


def _file_issue(issue_log: IssueLogBuffer, file_name: str, issue_type: str, message: str) -> None:
    issue_log.append(IssueRecord.create(file=file_name, column="", row=-1, issue_type=issue_type, message=message))


def _process_single_file(
    file_path: Path,
    session: ImportSession,
    store: PersistenceCollaborator,
    config: ImportConfig,
    issue_log: IssueLogBuffer,
) -> FileStat:
    """Load, validate and commit one file; per-file errors become a failed or
    deferred FileStat and an issue record instead of propagating.
    """
    start = datetime.now(UTC)
    name = file_path.name

    def stat(status: str, records: int = 0, dataset_id: str | None = None, error: str | None = None) -> FileStat:
        elapsed = (datetime.now(UTC) - start).total_seconds()
        return FileStat(name, status, records, elapsed, dataset_id=dataset_id, error=error)

    try:
        text = read_csv_text(file_path)
        session.load_file(name, text, division_name=config.division_files.get(name))
        outcome = session.commit(store, confirm_replace=config.confirm_replace)
    except LargeFileDeferred as e:
        logger.warning("%s", e)
        _file_issue(issue_log, name, "LARGE_FILE_DEFERRED", str(e))
        return stat(STATUS_DEFERRED, error=str(e))
    except StructuralValidationError as e:
        logger.error("%s: %s", name, e)
        for message in e.errors:
            _file_issue(issue_log, name, "MISSING_ROLE", message)
        return stat(STATUS_FAILED, error=str(e))
    except (SheetReadError, DateRoleError, CollaboratorError) as e:
        logger.error("%s: %s", name, e)
        _file_issue(issue_log, name, _ISSUE_TYPES.get(type(e), "IMPORT_ERROR"), str(e))
        return stat(STATUS_FAILED, error=str(e))

    if outcome is None:
        message = f"confirmation required: {session.check_duplicates().message}"
        logger.error("%s: %s", name, message)
        _file_issue(issue_log, name, "DUPLICATE_IMPORT", message)
        return stat(STATUS_FAILED, error=message)

    count = len(session.last_result) if session.last_result is not None else 0
    return stat(STATUS_SUCCESS, records=count, dataset_id=outcome.dataset_id)


def process_all(
    config: ImportConfig,
    store: PersistenceCollaborator | None = None,
    issue_log: IssueLogBuffer | None = None,
) -> ProcessingResult:
    """Import every CSV in ``config.source_directory``.

    Args:
        config: loaded import configuration.
        store: persistence collaborator; defaults to a JsonDatasetStore over
            ``config.output_directory``.
        issue_log: buffer for per-cell / per-file issues; flushed at the end.

    Returns:
        ProcessingResult with per-status file counts and per-file stats.

    Raises:
        ProcessingError: the source directory is missing or unreadable.
    """
    start_time = datetime.now(UTC)
    issue_log = issue_log if issue_log is not None else IssueLogBuffer()
    store = store if store is not None else JsonDatasetStore(Path(config.output_directory))

    file_paths = scan_csv_files(Path(config.source_directory))
    session = build_session(config, issue_log)

    file_stats: list[FileStat] = []
    with ProgressTracker(len(file_paths)) as progress:
        for file_path in file_paths:
            progress.start_file(file_path)
            file_stat = _process_single_file(file_path, session, store, config, issue_log)
            file_stats.append(file_stat)
            progress.record(file_stat)
    total_records = progress.total_records

    try:
        written = issue_log.flush()
    except OSError as e:
        logger.warning("failed to write issue log: %s", e)
    else:
        if written is not None:
            logger.info("issues written to %s", written)

    end_time = datetime.now(UTC)
    elapsed = (end_time - start_time).total_seconds()
    throughput = total_records / elapsed if elapsed > 0 else 0.0
    return ProcessingResult(
        success_files=progress.count(STATUS_SUCCESS),
        failed_files=progress.count(STATUS_FAILED),
        deferred_files=progress.count(STATUS_DEFERRED),
        total_records=total_records,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=elapsed,
        throughput_records_per_sec=throughput,
        file_stats=file_stats,
    )
