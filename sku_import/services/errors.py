from __future__ import annotations

"""Exception types raised by the import engine.

Format-inference uncertainty and role conflicts are never raised: they resolve
to defaults / safe reassignments. Only the cases below interrupt the caller.
"""

__all__ = [
    "ImportEngineError",
    "DateRoleError",
    "StructuralValidationError",
    "LargeFileDeferred",
    "CollaboratorError",
    "NoActiveFileError",
]


class ImportEngineError(Exception):
    """Base exception for the import engine."""


class DateRoleError(ImportEngineError):
    """Raised when a column assigned the Date role does not hold periods.

    The attempted assignment is not applied.
    """

    def __init__(self, column: str, date_format: str, valid_ratio: float, threshold: float) -> None:
        self.column = column
        self.date_format = date_format
        self.valid_ratio = valid_ratio
        self.threshold = threshold
        super().__init__(
            f"column '{column}' cannot be used as Date: only {valid_ratio:.0%} of its values "
            f"match the selected date format '{date_format}' (need {threshold:.0%})"
        )


class StructuralValidationError(ImportEngineError):
    """Raised when required roles are missing. All violations are collected."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class LargeFileDeferred(ImportEngineError):
    """File exceeds the in-process size threshold; hand it to the batch pipeline."""

    def __init__(self, file_name: str, size: int, threshold: int) -> None:
        self.file_name = file_name
        self.size = size
        self.threshold = threshold
        super().__init__(
            f"file '{file_name}' is {size} bytes (threshold {threshold}); "
            "deferred to the batch transformation pipeline"
        )


class CollaboratorError(ImportEngineError):
    """External collaborator (AI / persistence) failed. Terminal for this attempt."""


class NoActiveFileError(ImportEngineError):
    """An operation needs a loaded file but the session has none."""
