from __future__ import annotations

import logging
from typing import Iterable

from errors import DataIntegrityError, SeriesMisalignmentError
from periods import YearMonth, format_period

logger = logging.getLogger(__name__)

MONTHLY_PERIODS = tuple(f"M{month:02d}" for month in range(1, 13))
ANNUAL_PERIOD = "M13"


def period_code_to_month(code: str) -> int | None:
    if code in MONTHLY_PERIODS:
        return MONTHLY_PERIODS.index(code) + 1
    return None


def build_series_lookup(points: Iterable[dict], series_id: str = "") -> dict[str, float]:
    """Map "YYYY-MM" to value for one series, dropping annual aggregates.

    The same month reported twice with different values is a data integrity
    failure, never last-wins.
    """
    lookup: dict[str, float] = {}
    for point in points:
        if not isinstance(point, dict):
            continue
        month = period_code_to_month(str(point.get("period", "")))
        if month is None:
            continue
        try:
            year = int(point.get("year"))
        except (TypeError, ValueError) as exc:
            raise DataIntegrityError(f"Series {series_id}: invalid year {point.get('year')!r}") from exc
        try:
            value = float(point.get("value"))
        except (TypeError, ValueError):
            logger.info("Series %s: non-numeric value %r for %04d-%02d, skipped", series_id, point.get("value"), year, month)
            continue
        key = format_period(YearMonth(year, month))
        existing = lookup.get(key)
        if existing is not None and existing != value:
            raise DataIntegrityError(
                f"Series {series_id}: conflicting values for {key} ({existing} vs {value})"
            )
        lookup[key] = value
    return lookup


def series_points(series_data: list[dict], series_id: str) -> list[dict]:
    points: list[dict] = []
    for series in series_data:
        if isinstance(series, dict) and series.get("seriesID") == series_id:
            data = series.get("data")
            if isinstance(data, list):
                points.extend(data)
    return points


def build_lookups(series_data: list[dict], series_ids: Iterable[str]) -> dict[str, dict[str, float]]:
    return {sid: build_series_lookup(series_points(series_data, sid), sid) for sid in series_ids}


def find_latest_period(lookups: dict[str, dict[str, float]]) -> str:
    """Return the newest month shared by every series.

    Every configured series must report the same latest month; anything else
    aborts the run.
    """
    if not lookups:
        raise DataIntegrityError("No series data to align")
    latest_by_series: dict[str, str] = {}
    for series_id, lookup in lookups.items():
        if not lookup:
            raise DataIntegrityError(f"No monthly data found for series {series_id}")
        latest_by_series[series_id] = max(lookup)
    distinct = set(latest_by_series.values())
    if len(distinct) != 1:
        raise SeriesMisalignmentError(latest_by_series)
    return distinct.pop()


def monthly_only(series_data: list[dict]) -> list[dict]:
    """Copy of the upstream payload with annual aggregate rows removed."""
    out: list[dict] = []
    for series in series_data:
        if not isinstance(series, dict):
            continue
        data = series.get("data") if isinstance(series.get("data"), list) else []
        out.append(
            {
                "seriesID": series.get("seriesID"),
                "data": [d for d in data if isinstance(d, dict) and d.get("period") in MONTHLY_PERIODS],
            }
        )
    return out
