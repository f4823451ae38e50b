"""Trend windows, deltas and rolling averages.

A trend is a fixed window of TREND_LENGTH display values, oldest first, one
slot per calendar month ending at the reference period. Months without a
normalized snapshot (or without the metric) hold None in their own slot so the
window stays aligned to the calendar.
"""
from __future__ import annotations

import logging
import statistics
from typing import Optional

from errors import InsufficientHistoryError
from gate_policy import AVERAGE_WINDOW, HISTORY_MONTHS, MAX_TREND_NULLS, TREND_LENGTH
from metrics import round_half_up
from models import NormalizedSnapshot
from periods import format_period, parse, subtract_months
from storage import DataLayout, read_json_if_exists, validate_model
from values import ABSENT, Maybe, Present, from_optional, is_present

logger = logging.getLogger(__name__)

Trend = list[Optional[float]]


def load_trend_history(
    layout: DataLayout,
    period: str,
    months: int = HISTORY_MONTHS,
) -> list[NormalizedSnapshot | None]:
    """Prior snapshots for period-months .. period-1, oldest first.

    A missing file is a gap (None). A file that exists but does not parse is
    fatal.
    """
    current = parse(period)
    history: list[NormalizedSnapshot | None] = []
    for offset in range(months, 0, -1):
        target = format_period(subtract_months(current, offset))
        path = layout.normalized_path(target)
        payload = read_json_if_exists(path)
        if payload is None:
            history.append(None)
            continue
        history.append(validate_model(payload, NormalizedSnapshot, path))
    return history


def history_values(history: list[NormalizedSnapshot | None], metric_key: str) -> Trend:
    values: Trend = []
    for snapshot in history:
        if snapshot is None:
            values.append(None)
            continue
        metric = snapshot.metrics.get(metric_key)
        values.append(metric.display_value if metric is not None else None)
    return values


def pad_trend(values: Trend, length: int = TREND_LENGTH) -> Trend:
    if len(values) >= length:
        return list(values[-length:])
    return [None] * (length - len(values)) + list(values)


def build_trend(history: list[NormalizedSnapshot | None], metric_key: str, current_value: float) -> Trend:
    trend = pad_trend(history_values(history, metric_key) + [current_value])
    if len(trend) != TREND_LENGTH:
        raise AssertionError(f"Trend for {metric_key} has {len(trend)} values, expected {TREND_LENGTH}")
    return trend


def build_trends(history: list[NormalizedSnapshot | None], metrics: dict[str, dict]) -> dict[str, Trend]:
    return {key: build_trend(history, key, metric["display_value"]) for key, metric in metrics.items()}


def null_count(trend: Trend) -> int:
    return sum(1 for value in trend if value is None)


def enforce_trend_guardrail(trends: dict[str, Trend], max_nulls: int = MAX_TREND_NULLS) -> None:
    for key, trend in trends.items():
        missing = null_count(trend)
        if missing > max_nulls:
            raise InsufficientHistoryError(key, missing, max_nulls)


def prior_release_values(document: dict | None) -> dict[str, Maybe]:
    """Metric values from the last published document.

    Older documents stored structured metrics, newer ones a plain value.
    """
    if not isinstance(document, dict):
        return {}
    metrics = document.get("metrics")
    if not isinstance(metrics, dict):
        return {}
    out: dict[str, Maybe] = {}
    for key, metric in metrics.items():
        if isinstance(metric, dict):
            raw = metric.get("value", metric.get("display_value"))
        else:
            raw = metric
        out[key] = from_optional(raw)
    return out


def compute_deltas(metrics: dict[str, dict], prior_values: dict[str, Maybe]) -> dict[str, dict]:
    deltas: dict[str, dict] = {}
    for key, metric in metrics.items():
        prior = prior_values.get(key, ABSENT)
        if not is_present(prior):
            logger.info("No prior published value for %s, delta omitted", key)
            continue
        precision = int(metric["precision"])
        delta_raw = float(metric["display_value"]) - prior.value
        deltas[key] = {
            "raw_value": delta_raw,
            "display_value": round_half_up(delta_raw, precision),
            "unit": metric["unit"],
            "scale": 1.0,
            "precision": precision,
        }
    return deltas


def compute_twelve_month_average(trend: Trend, precision: int, window: int = AVERAGE_WINDOW) -> Maybe:
    recent = [value for value in trend[-window:] if value is not None]
    if not recent:
        return ABSENT
    return Present(round_half_up(statistics.fmean(recent), precision))


def compute_twelve_month_averages(trends: dict[str, Trend], metrics: dict[str, dict]) -> dict[str, float]:
    averages: dict[str, float] = {}
    for key, trend in trends.items():
        average = compute_twelve_month_average(trend, int(metrics[key]["precision"]))
        if is_present(average):
            averages[key] = average.value
        else:
            logger.info("Twelve-month average for %s omitted, window is empty", key)
    return averages
