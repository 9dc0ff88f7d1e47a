"""Domain models for the SKU sales CSV import engine.

This package contains the value types passed between the detectors, the
classifier, the normalizer and the validator. All of them are immutable.
"""

from .column_role import ColumnRole, Dimension, FixedRole, parse_role, role_label
from .format_settings import FormatLocks, FormatSettings
from .imported_csv import ImportedCsvRecord
from .normalized_record import NormalizedRecord, OrgEntities
from .org_capabilities import DivisionCsvType, ImportLevel, OrgCapabilities
from .processing_result import DateFrequency, FileStat, ImportOutcome, ImportSummary, ProcessingResult
from .raw_sheet import RawSheet

__all__ = [
    # Roles
    "ColumnRole",
    "Dimension",
    "FixedRole",
    "parse_role",
    "role_label",
    # Configuration snapshots
    "DivisionCsvType",
    "FormatLocks",
    "FormatSettings",
    "ImportLevel",
    "OrgCapabilities",
    # Data
    "ImportedCsvRecord",
    "NormalizedRecord",
    "OrgEntities",
    "RawSheet",
    # Results
    "DateFrequency",
    "FileStat",
    "ImportOutcome",
    "ImportSummary",
    "ProcessingResult",
]
