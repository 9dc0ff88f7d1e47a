from __future__ import annotations

from collections.abc import Sequence

import pandas as pd

from ..models.normalized_record import NormalizedRecord
from ..models.processing_result import DateFrequency, ImportSummary, ProcessingResult

"""Dataset summary and SUMMARY line rendering.

- ``build_summary``: SKU count, period span and inferred frequency of an
  accepted dataset (returned to the caller with the dataset id).
- ``render_summary_line``: one-line batch report printed at the SUMMARY level.
"""

__all__ = [
    "infer_frequency",
    "build_summary",
    "render_summary_line",
]

NOT_AVAILABLE = "N/A"

# (上限日数, 種別, 季節周期)
_FREQUENCY_STEPS: tuple[tuple[float, str, int], ...] = (
    (2, "daily", 7),
    (8, "weekly", 52),
    (35, "monthly", 12),
    (100, "quarterly", 4),
)
_YEARLY = ("yearly", 1)
_MAX_SAMPLE_DATES = 10


def infer_frequency(dates: Sequence[str]) -> DateFrequency:
    """Frequency from the average gap between the first ten distinct dates.

    Fewer than two parseable dates default to monthly.
    """
    parsed = pd.to_datetime(pd.Series(list(dates), dtype="object"), format="%Y-%m-%d", errors="coerce")
    distinct = parsed.dropna().drop_duplicates().sort_values().head(_MAX_SAMPLE_DATES)
    if len(distinct) < 2:
        return DateFrequency(type="monthly", interval=30, seasonal_period=12)
    avg_days = float(distinct.diff().dropna().dt.days.mean())
    interval = max(1, round(avg_days))
    for limit, name, season in _FREQUENCY_STEPS:
        if avg_days <= limit:
            return DateFrequency(type=name, interval=interval, seasonal_period=season)
    return DateFrequency(type=_YEARLY[0], interval=interval, seasonal_period=_YEARLY[1])


def build_summary(records: Sequence[NormalizedRecord]) -> ImportSummary:
    if not records:
        return ImportSummary(
            sku_count=0,
            date_range=(NOT_AVAILABLE, NOT_AVAILABLE),
            total_periods=0,
            frequency=infer_frequency([]),
        )
    df = pd.DataFrame({"code": [r.material_code for r in records], "date": [r.date for r in records]})
    periods = sorted(df["date"].unique())
    return ImportSummary(
        sku_count=int(df["code"].nunique()),
        date_range=(str(periods[0]), str(periods[-1])),
        total_periods=len(periods),
        frequency=infer_frequency(periods),
    )


def _format_metric(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # 指数表記を避ける
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return str(round(value, 3))


def render_summary_line(total_files: int, result: ProcessingResult) -> str:
    """Render the batch SUMMARY line.

    Format:
    SUMMARY files={n}/{n} success={s} failed={f} deferred={d} records={r}
    elapsed_sec={e} throughput_rps={t}
    """
    return (
        f"SUMMARY files={total_files}/{total_files} "
        f"success={result.success_files} "
        f"failed={result.failed_files} "
        f"deferred={result.deferred_files} "
        f"records={result.total_records} "
        f"elapsed_sec={_format_metric(result.elapsed_seconds)} "
        f"throughput_rps={_format_metric(result.throughput_records_per_sec)}"
    )
