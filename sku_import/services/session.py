from __future__ import annotations

import logging

from ..logging.issue_log import IssueLogBuffer, IssueRecord
from ..models.column_role import ColumnRole, role_label
from ..models.format_settings import FormatLocks, FormatSettings
from ..models.imported_csv import ImportedCsvRecord
from ..models.org_capabilities import OrgCapabilities
from ..models.processing_result import ImportOutcome
from ..models.raw_sheet import RawSheet
from ..sheet.reader import (
    SEPARATORS,
    build_sheet,
    detect_separator,
    first_line,
    parse_matrix,
    transpose_matrix,
    trim_matrix,
)
from .collaborators import AiAssistant, AiSuggestion, PersistenceCollaborator
from .column_roles import (
    DEFAULT_DATE_ROLE_THRESHOLD,
    RoleAssignment,
    assign_role,
    roles_from_suggestion,
    seed_roles,
)
from .date_format import DATE_FORMATS, date_candidates, detect_date_format
from .date_range import date_range, set_date_range
from .duplicates import (
    DuplicateDecision,
    check_duplicates,
    content_hash,
    register_import,
    remove_import,
)
from .errors import CollaboratorError, LargeFileDeferred, NoActiveFileError
from .normalizer import NormalizationResult, extract_org_entities, normalize
from .number_format import NUMBER_FORMATS, collect_number_samples, detect_number_format
from .orientation import detect_orientation, header_cells
from .validator import validate_roles

"""Import session: the stateful glue around the pure detectors.

One session spans a setup flow (possibly several files). Per file it owns the
parsed matrix, the canonical sheet, the roles and the range; loading another
file resets all of that and bumps the file token. Format settings chosen
explicitly stay locked for the whole session.
"""

__all__ = [
    "DEFAULT_LARGE_FILE_THRESHOLD",
    "ImportSession",
]

logger = logging.getLogger(__name__)

DEFAULT_LARGE_FILE_THRESHOLD = 5 * 1024 * 1024


class ImportSession:
    """Stateful import flow for one organization."""

    def __init__(
        self,
        org: OrgCapabilities,
        *,
        settings: FormatSettings | None = None,
        locks: FormatLocks | None = None,
        date_role_threshold: float = DEFAULT_DATE_ROLE_THRESHOLD,
        large_file_threshold: int = DEFAULT_LARGE_FILE_THRESHOLD,
        issue_log: IssueLogBuffer | None = None,
    ) -> None:
        self.org = org
        self.settings = settings or FormatSettings()
        self.locks = locks or FormatLocks()
        self.date_role_threshold = date_role_threshold
        self.large_file_threshold = large_file_threshold
        self.issue_log = issue_log
        self.imported: tuple[ImportedCsvRecord, ...] = ()
        self._token = 0
        self._reset_file_state()

    # ------------------------------------------------------------------ state
    def _reset_file_state(self) -> None:
        self.file_name: str | None = None
        self.division_name: str | None = None
        self._text: str = ""
        self._hash: str = ""
        self._matrix: list[list[str]] = []
        self._sheet: RawSheet | None = None
        self._roles: tuple[ColumnRole, ...] = ()
        self._roles_edited = False
        self.last_result: NormalizationResult | None = None

    @property
    def token(self) -> int:
        return self._token

    @property
    def has_file(self) -> bool:
        return self._sheet is not None

    def _require_file(self) -> RawSheet:
        if self._sheet is None:
            raise NoActiveFileError("no file loaded")
        return self._sheet

    @property
    def sheet(self) -> RawSheet:
        return self._require_file()

    @property
    def roles(self) -> tuple[ColumnRole, ...]:
        self._require_file()
        return self._roles

    @property
    def content_hash(self) -> str:
        self._require_file()
        return self._hash

    @property
    def date_range(self) -> tuple[int, int] | None:
        return date_range(self.roles)

    def _issue(self, issue_type: str, message: str, column: str = "", row: int = -1) -> None:
        if self.issue_log is None:
            return
        self.issue_log.append(
            IssueRecord.create(
                file=self.file_name or "",
                column=column,
                row=row,
                issue_type=issue_type,
                message=message,
            )
        )

    # ------------------------------------------------------------------ load
    def load_file(self, file_name: str, text: str, division_name: str | None = None) -> int:
        """Load a new file and run detection. Returns the new file token.

        Raises:
            LargeFileDeferred: the file is above ``large_file_threshold``; the
                session then has no active file.
        """
        self._token += 1
        self._reset_file_state()
        size = len(text.encode("utf-8"))
        if size > self.large_file_threshold:
            raise LargeFileDeferred(file_name, size, self.large_file_threshold)

        self.file_name = file_name
        self.division_name = division_name
        self._text = text
        self._hash = content_hash(text)
        if not self.locks.separator:
            self.settings = self.settings.with_changes(separator=detect_separator(first_line(text)))
        self._matrix = trim_matrix(parse_matrix(text, self.settings.separator))
        self._detect_layout()
        self._refresh(reseed=True)
        logger.info(
            "loaded %s: separator=%r date_format=%s number_format=%s transposed=%s",
            file_name, self.settings.separator, self.settings.date_format,
            self.settings.number_format, self.settings.transposed,
        )
        return self._token

    def _detect_layout(self) -> None:
        """Orientation and date format, each unless locked."""
        if not self.locks.transposed:
            locked_fmt = self.settings.date_format if self.locks.date_format else None
            result = detect_orientation(self._matrix, locked_fmt)
            self.settings = self.settings.with_changes(transposed=result.transposed)
            if not self.locks.date_format:
                self.settings = self.settings.with_changes(date_format=result.date_format)
        elif not self.locks.date_format:
            self._redetect_date_format()

    def _redetect_date_format(self) -> None:
        oriented = transpose_matrix(self._matrix) if self.settings.transposed else self._matrix
        fmt = detect_date_format(date_candidates(header_cells(oriented)))
        self.settings = self.settings.with_changes(date_format=fmt)

    def _refresh(self, reseed: bool) -> None:
        self._sheet = build_sheet(self._matrix, self.settings.transposed)
        if reseed:
            self._roles = seed_roles(self._sheet, self.org, self.settings.date_format, self.date_role_threshold)
            self._roles_edited = False
        if not self.locks.number_format:
            samples = collect_number_samples(self._sheet, self._roles, self.settings.date_format)
            self.settings = self.settings.with_changes(number_format=detect_number_format(samples))

    # -------------------------------------------------------------- settings
    def set_separator(self, separator: str) -> None:
        """Lock the field separator and re-parse the current file with it.

        Orientation and date format are re-detected (unless locked) and the
        roles are seeded again, since the column set may change completely.

        Raises:
            ValueError: ``separator`` is not one of ``SEPARATORS``.
        """
        if separator not in SEPARATORS:
            raise ValueError(f"unsupported separator: {separator!r}")
        self.settings = self.settings.with_changes(separator=separator)
        self.locks = self.locks.lock("separator")
        if self.has_file:
            self._matrix = trim_matrix(parse_matrix(self._text, separator))
            self._detect_layout()
            self._refresh(reseed=True)

    def set_date_format(self, date_format: str) -> None:
        """Lock the period header format.

        Roles are re-seeded only while the user has not edited them.

        Raises:
            ValueError: unknown format.
        """
        if date_format not in DATE_FORMATS:
            raise ValueError(f"unsupported date format: {date_format!r}")
        self.settings = self.settings.with_changes(date_format=date_format)
        self.locks = self.locks.lock("date_format")
        if self.has_file:
            self._refresh(reseed=not self._roles_edited)

    def set_number_format(self, number_format: str) -> None:
        if number_format not in NUMBER_FORMATS:
            raise ValueError(f"unsupported number format: {number_format!r}")
        self.settings = self.settings.with_changes(number_format=number_format)
        self.locks = self.locks.lock("number_format")

    def set_transposed(self, transposed: bool) -> None:
        """Lock the orientation; re-detects the date format on the new header row."""
        self.settings = self.settings.with_changes(transposed=bool(transposed))
        self.locks = self.locks.lock("transposed")
        if self.has_file:
            if not self.locks.date_format:
                self._redetect_date_format()
            self._refresh(reseed=True)

    def toggle_transpose(self) -> None:
        self.set_transposed(not self.settings.transposed)

    # ----------------------------------------------------------------- roles
    def assign_role(self, index: int, role: ColumnRole | str) -> RoleAssignment:
        """Assign ``role`` to column ``index`` of the current sheet.

        A role the organization has not enabled, or an exclusive role already
        held by another column, is stored as a field named after the header
        (Ignore for period headers) and logged as an issue.

        Args:
            index: column position in ``sheet.headers``.
            role: a ColumnRole or its display label.

        Returns:
            RoleAssignment with the new role tuple and what was applied.

        Raises:
            NoActiveFileError: no file loaded.
            IndexError: ``index`` is outside the sheet.
            DateRoleError: the column fails the date-value threshold.
        """
        result = assign_role(
            self.roles, index, role, self.sheet, self.org,
            self.settings.date_format, self.date_role_threshold,
        )
        self._roles = result.roles
        self._roles_edited = True
        if result.reinterpreted:
            self._issue(
                f"ROLE_{result.outcome.upper()}",
                f"requested '{role_label(result.requested)}', kept as '{role_label(result.applied)}'",
                column=self.sheet.headers[index],
            )
        return result

    def set_date_range(self, start: int, end: int) -> None:
        """Mark columns ``start..end`` (inclusive) as Date, the rest of the
        former range as Ignore.

        Args:
            start: first period column index.
            end: last period column index.

        Raises:
            ValueError: the bounds are reversed or outside the sheet.
        """
        self._roles = set_date_range(self.roles, start, end)
        self._roles_edited = True

    def apply_ai_suggestion(self, token: int, suggestion: AiSuggestion) -> bool:
        """Apply an AI suggestion if it belongs to the current file.

        Returns False (and changes nothing) for a stale token.
        """
        if token != self._token or not self.has_file:
            logger.debug("discarding stale suggestion (token=%s current=%s)", token, self._token)
            return False
        if suggestion.transformed_data:
            self._matrix = trim_matrix(suggestion.transformed_data)
            self.settings = self.settings.with_changes(transposed=False)
            # AI の出力は元ファイルと別の日付書式 (ISO など) のことがある
            if not self.locks.date_format:
                self._redetect_date_format()
            self._sheet = build_sheet(self._matrix, False)
        self._roles = roles_from_suggestion(
            self.sheet, suggestion.column_roles, self.org,
            self.settings.date_format, self.date_role_threshold,
        )
        self._roles_edited = True
        if not self.locks.number_format:
            samples = collect_number_samples(self.sheet, self._roles, self.settings.date_format)
            self.settings = self.settings.with_changes(number_format=detect_number_format(samples))
        return True

    def request_ai_suggestion(self, assistant: AiAssistant) -> bool:
        """Ask ``assistant`` for a layout suggestion and apply it.

        Returns:
            Whatever ``apply_ai_suggestion`` returns for the token captured
            before the call.

        Raises:
            CollaboratorError: the assistant failed.
        """
        self._require_file()
        token = self._token
        text = self._text
        try:
            suggestion = assistant.suggest(text)
        except CollaboratorError:
            raise
        except Exception as e:
            raise CollaboratorError(f"AI suggestion failed: {e}") from e
        return self.apply_ai_suggestion(token, suggestion)

    # --------------------------------------------------------------- results
    def preview(self) -> NormalizationResult:
        """Normalize the current sheet without persisting anything.

        Returns:
            NormalizationResult (long-format records plus the period headers
            that could not be parsed).
        """
        return normalize(self.sheet, self.roles, self.settings)

    def validate(self) -> None:
        """Raises StructuralValidationError when required roles are missing."""
        validate_roles(self.roles, self.org)

    def candidate_record(self) -> ImportedCsvRecord:
        entities = extract_org_entities(self.sheet, self.roles)
        return ImportedCsvRecord(
            file_name=self.file_name or "",
            divisions=entities.divisions,
            clusters=entities.clusters,
            division_name=self.division_name,
            content_hash=self._hash,
        )

    def check_duplicates(self) -> DuplicateDecision:
        """Compare the current file against the imports of this session.

        Returns:
            DuplicateDecision; ``requires_confirmation`` is set when the file
            would supersede earlier company-level imports or replace the data
            of divisions already imported.
        """
        return check_duplicates(self.imported, self.candidate_record(), self.org)

    def commit(self, store: PersistenceCollaborator, confirm_replace: bool = False) -> ImportOutcome | None:
        """Validate, normalize and hand the dataset to ``store``.

        Returns None when the duplicate decision needs confirmation that was
        not given; the session is left unchanged in that case.

        Raises:
            StructuralValidationError: required roles are missing.
            CollaboratorError: persistence failed (bookkeeping untouched).
        """
        self.validate()
        result = self.preview()
        decision = self.check_duplicates()
        if decision.requires_confirmation and not confirm_replace:
            logger.info("%s: not imported, confirmation required (%s)", self.file_name, decision.message)
            return None
        entities = extract_org_entities(self.sheet, self.roles)
        column_roles = dict(zip(self.sheet.headers, self.roles))
        try:
            outcome = store.import_records(
                result.records, entities, self.file_name or "", self._hash, column_roles,
            )
        except CollaboratorError:
            raise
        except Exception as e:
            raise CollaboratorError(f"import of '{self.file_name}' failed: {e}") from e

        for header in result.unparsed_headers:
            self._issue(
                "UNPARSED_PERIOD_HEADER",
                f"period header kept as raw text ({self.settings.date_format})",
                column=header,
            )
        self.imported = register_import(self.imported, self.candidate_record(), decision, confirm_replace)
        self.last_result = result
        logger.info("%s: imported %d records as %s", self.file_name, len(result), outcome.dataset_id)
        return outcome

    def remove_import(self, file_name: str) -> None:
        """Forget a previous import so its entities no longer count as overlap."""
        self.imported = remove_import(self.imported, file_name)
