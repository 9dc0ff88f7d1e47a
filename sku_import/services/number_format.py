from __future__ import annotations

import math
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from ..models.column_role import ColumnRole, FixedRole
from ..models.format_settings import DEFAULT_NUMBER_FORMAT
from ..models.raw_sheet import RawSheet
from .date_format import is_date

"""Number format detection and parsing for sales cells.

Formats are written as exemplars; each one fixes the decimal separator and the
optional thousands separator. Grouping is optional ("1234.56" parses under
"1,234.56") but when present it must be well-formed groups of three.
"""

__all__ = [
    "NumberFormat",
    "NUMBER_FORMATS",
    "parse_number",
    "score_number_formats",
    "detect_number_format",
    "collect_number_samples",
]


@dataclass(frozen=True)
class NumberFormat:
    exemplar: str
    decimal: str | None
    thousands: str | None

    @property
    def pattern(self) -> re.Pattern[str]:
        if self.thousands:
            t = re.escape(self.thousands)
            body = rf"(?:\d{{1,3}}(?:{t}\d{{3}})+|\d+)"
        else:
            body = r"\d+"
        frac = rf"(?:{re.escape(self.decimal)}\d+)?" if self.decimal else ""
        return re.compile(rf"^[+-]?{body}{frac}$")


# 並び順 = タイブレーク順
NUMBER_FORMATS: dict[str, NumberFormat] = {
    f.exemplar: f
    for f in (
        NumberFormat("1,234.56", ".", ","),
        NumberFormat("1.234,56", ",", "."),
        NumberFormat("1234.56", ".", None),
        NumberFormat("1234,56", ",", None),
        NumberFormat("1 234,56", ",", " "),
        NumberFormat("1 234.56", ".", " "),
        NumberFormat("1234", None, None),
    )
}

_SPACES = re.compile(r"[\u00a0\u202f]")
_DIGIT = re.compile(r"\d")
_SAMPLE_LIMIT = 500


def _clean(value: str) -> str:
    return _SPACES.sub(" ", str(value)).strip()


def parse_number(value: str, fmt: str) -> float | None:
    """Parse ``value`` under the exemplar ``fmt``; None when it does not fit."""
    nf = NUMBER_FORMATS.get(fmt)
    if nf is None or value is None:
        return None
    text = _clean(value)
    if not text or not nf.pattern.match(text):
        return None
    if nf.thousands:
        text = text.replace(nf.thousands, "")
    if nf.decimal and nf.decimal != ".":
        text = text.replace(nf.decimal, ".")
    number = float(text)
    return number if math.isfinite(number) else None


def score_number_formats(
    samples: Iterable[str], formats: Sequence[str] | None = None
) -> dict[str, tuple[int, int]]:
    """Return ``{format: (parsed, parsed_samples_using_the_thousands_separator)}``."""
    cleaned = [_clean(s) for s in samples if s is not None and _DIGIT.search(str(s))]
    scores: dict[str, tuple[int, int]] = {}
    for fmt in formats or list(NUMBER_FORMATS):
        nf = NUMBER_FORMATS[fmt]
        ok = [s for s in cleaned if parse_number(s, fmt) is not None]
        hits = sum(1 for s in ok if nf.thousands and nf.thousands in s)
        scores[fmt] = (len(ok), hits)
    return scores


def detect_number_format(samples: Iterable[str], default: str = DEFAULT_NUMBER_FORMAT) -> str:
    """Best-scoring exemplar; ``default`` when no sample parses at all."""
    best_fmt = default
    best_key: tuple[int, int] = (0, 0)
    for fmt, key in score_number_formats(samples).items():
        if key[0] > 0 and key > best_key:
            best_fmt = fmt
            best_key = key
    return best_fmt


_NON_NUMERIC_ROLES = frozenset({FixedRole.MATERIAL_CODE, FixedRole.DESCRIPTION})


def collect_number_samples(
    sheet: RawSheet,
    roles: Sequence[ColumnRole] | None,
    date_format: str,
    limit: int = _SAMPLE_LIMIT,
) -> list[str]:
    """Digit-bearing cells from columns that may hold sales figures.

    Material Code / Description columns are skipped; so are cells that are
    themselves period labels under ``date_format``.
    """
    samples: list[str] = []
    for idx, header in enumerate(sheet.headers):
        if roles is not None and idx < len(roles) and roles[idx] in _NON_NUMERIC_ROLES:
            continue
        for row in sheet.rows:
            cell = row[header]
            if not _DIGIT.search(cell) or is_date(cell, date_format):
                continue
            samples.append(cell)
            if len(samples) >= limit:
                return samples
    return samples
