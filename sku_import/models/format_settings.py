from __future__ import annotations

from dataclasses import dataclass, replace

"""FormatSettings snapshot and explicit-override locks.

A FormatSettings instance describes exactly one preview. Changing a field
produces a new instance (``with_changes``) and a fresh Wide-to-Long pass;
nothing is mutated in place.
"""

__all__ = [
    "DEFAULT_SEPARATOR",
    "DEFAULT_DATE_FORMAT",
    "DEFAULT_NUMBER_FORMAT",
    "FormatSettings",
    "FormatLocks",
]

DEFAULT_SEPARATOR = ","
DEFAULT_DATE_FORMAT = "dd/mm/yyyy"
DEFAULT_NUMBER_FORMAT = "1,234.56"


@dataclass(frozen=True)
class FormatSettings:
    """Parsing settings for one preview of one file."""
    separator: str = DEFAULT_SEPARATOR
    date_format: str = DEFAULT_DATE_FORMAT
    number_format: str = DEFAULT_NUMBER_FORMAT
    transposed: bool = False

    def with_changes(self, **changes: object) -> FormatSettings:
        return replace(self, **changes)  # type: ignore[arg-type]


@dataclass(frozen=True)
class FormatLocks:
    """Which settings were chosen explicitly (user / AI) and must not be re-detected.

    Explicit intent is sticky for the rest of the session.
    """
    separator: bool = False
    date_format: bool = False
    number_format: bool = False
    transposed: bool = False

    def lock(self, field_name: str) -> FormatLocks:
        return replace(self, **{field_name: True})
