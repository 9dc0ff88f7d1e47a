from __future__ import annotations

import calendar
import re
from collections.abc import Iterable, Sequence
from datetime import date

from ..models.format_settings import DEFAULT_DATE_FORMAT

"""Date format detection and parsing for period headers.

The five canonical day-level patterns come first; month, ISO-week and year
patterns extend the set for monthly/weekly exports. A pattern "explains" a
value only if it yields a real calendar date.
"""

__all__ = [
    "CANONICAL_DATE_FORMATS",
    "EXTENDED_DATE_FORMATS",
    "DATE_FORMATS",
    "ROW_LABEL_DATE_FORMATS",
    "DETECTION_YEARS",
    "parse_date",
    "format_iso",
    "to_iso",
    "is_date",
    "date_candidates",
    "score_date_formats",
    "detect_date_format",
]

CANONICAL_DATE_FORMATS: tuple[str, ...] = (
    "dd/mm/yyyy",
    "mm/dd/yyyy",
    "yyyy-mm-dd",
    "dd-mm-yyyy",
    "yyyy/mm/dd",
)

EXTENDED_DATE_FORMATS: tuple[str, ...] = (
    "mm/yyyy",
    "yyyy-mm",
    "yyyy-ww",
    "ww-yyyy",
    "yyyy",
)

DATE_FORMATS: tuple[str, ...] = CANONICAL_DATE_FORMATS + EXTENDED_DATE_FORMATS

# 先頭列の 4 桁数値は SKU コードと区別できないため年単独は候補にしない
ROW_LABEL_DATE_FORMATS: tuple[str, ...] = tuple(f for f in DATE_FORMATS if f != "yyyy")

# detection only; explicit formats still parse any year
DETECTION_YEARS = range(1900, 2101)

_DIGIT = re.compile(r"\d")
_DAY_MONTH = re.compile(r"^\d{1,2}$")
_YEAR = re.compile(r"^\d{4}$")
_WEEK = re.compile(r"^[Ww]?(\d{1,2})$")

# format -> (separator, part order)
_LAYOUTS: dict[str, tuple[str, tuple[str, ...]]] = {
    "dd/mm/yyyy": ("/", ("d", "m", "y")),
    "mm/dd/yyyy": ("/", ("m", "d", "y")),
    "yyyy-mm-dd": ("-", ("y", "m", "d")),
    "dd-mm-yyyy": ("-", ("d", "m", "y")),
    "yyyy/mm/dd": ("/", ("y", "m", "d")),
    "mm/yyyy": ("/", ("m", "y")),
    "yyyy-mm": ("-", ("y", "m")),
    "yyyy-ww": ("-", ("y", "w")),
    "ww-yyyy": ("-", ("w", "y")),
    "yyyy": ("", ("y",)),
}


def _valid_date(year: int, month: int, day: int) -> date | None:
    if not 1 <= month <= 12:
        return None
    if not 1 <= day <= calendar.monthrange(year, month)[1]:
        return None
    if not 1 <= year <= 9999:
        return None
    return date(year, month, day)


def _iso_week_monday(year: int, week: int) -> date | None:
    try:
        return date.fromisocalendar(year, week, 1)
    except ValueError:
        return None


def parse_date(value: str, fmt: str) -> date | None:
    """Parse ``value`` strictly under ``fmt``; None when it is not a real date."""
    if value is None:
        return None
    text = str(value).strip()
    if not text or fmt not in _LAYOUTS:
        return None
    sep, order = _LAYOUTS[fmt]
    parts = text.split(sep) if sep else [text]
    if len(parts) != len(order):
        return None
    year = month = week = None
    day = 1
    for token, kind in zip(parts, order):
        token = token.strip()
        if kind == "y":
            if not _YEAR.match(token):
                return None
            year = int(token)
        elif kind == "w":
            m = _WEEK.match(token)
            if not m:
                return None
            week = int(m.group(1))
        else:
            if not _DAY_MONTH.match(token):
                return None
            if kind == "d":
                day = int(token)
            else:
                month = int(token)
    if year is None:
        return None
    if week is not None:
        return _iso_week_monday(year, week)
    return _valid_date(year, month if month is not None else 1, day)


def format_iso(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def to_iso(value: str, fmt: str) -> str | None:
    parsed = parse_date(value, fmt)
    return format_iso(parsed) if parsed is not None else None


def is_date(value: str, fmt: str) -> bool:
    return parse_date(value, fmt) is not None


def date_candidates(values: Iterable[str]) -> list[str]:
    """Values worth testing: strings that contain at least one digit."""
    return [str(v).strip() for v in values if v is not None and _DIGIT.search(str(v))]


def score_date_formats(
    values: Iterable[str], formats: Sequence[str] = DATE_FORMATS
) -> dict[str, tuple[int, int]]:
    """Return ``{format: (explained, explained_by_this_format_only)}``.

    A value only counts as explained when its year falls in DETECTION_YEARS,
    so codes such as ``1001`` or ``0042-05`` never look like periods.
    """
    candidates = date_candidates(values)
    explained: dict[str, set[int]] = {fmt: set() for fmt in formats}
    for fmt in formats:
        for i, c in enumerate(candidates):
            parsed = parse_date(c, fmt)
            if parsed is not None and parsed.year in DETECTION_YEARS:
                explained[fmt].add(i)
    scores: dict[str, tuple[int, int]] = {}
    for fmt in formats:
        others: set[int] = set()
        for other, hits in explained.items():
            if other != fmt:
                others |= hits
        scores[fmt] = (len(explained[fmt]), len(explained[fmt] - others))
    return scores


def detect_date_format(
    values: Iterable[str],
    formats: Sequence[str] = DATE_FORMATS,
    default: str = DEFAULT_DATE_FORMAT,
) -> str:
    """Best-scoring format for a batch of header strings.

    Ambiguous values (day and month both <= 12) count for every format they
    fit, so the decision falls to the values only one format explains. Exact
    ties keep canonical order. Nothing parseable -> ``default``.
    """
    best_fmt = default
    best_key: tuple[int, int] = (0, 0)
    for fmt, key in score_date_formats(values, formats).items():
        if key[0] > 0 and key > best_key:
            best_fmt = fmt
            best_key = key
    return best_fmt
