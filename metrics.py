"""Direct and derived metric computation.

Direct metrics scale a raw observation into a display value. Derived metrics
are percent changes of an index level against the same series lag_months
earlier. Either kind is omitted, never zero-filled, when its inputs are missing.
"""
from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal

from datasets import DatasetSpec, MetricDefinition
from errors import ConfigurationError
from periods import format_period, parse, subtract_months
from values import ABSENT, Maybe, Present, is_present

logger = logging.getLogger(__name__)


def round_half_up(value: float, places: int) -> float:
    """Round ties away from zero, so -0.25 becomes -0.3 at one place.

    Negative ties are deliberately symmetric with positive ones rather than
    rounded toward positive infinity.
    """
    # repr() gives the shortest decimal that round-trips, so 2.675 stays 2.675
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))


def structured_metric(raw_value: float, display_value: float, unit: str, scale: float, precision: int) -> dict:
    return {
        "raw_value": raw_value,
        "display_value": display_value,
        "unit": unit,
        "scale": scale,
        "precision": precision,
    }


def extract_direct_metric(raw_value: float, definition: MetricDefinition) -> dict:
    display_value = round_half_up(raw_value * definition.scale, definition.precision)
    return structured_metric(raw_value, display_value, definition.unit, definition.scale, definition.precision)


def extract_metrics(
    spec: DatasetSpec,
    series_ids: dict[str, str],
    lookups: dict[str, dict[str, float]],
    period: str,
) -> dict[str, dict]:
    metrics: dict[str, dict] = {}
    for metric_key, series_id in series_ids.items():
        raw_value = lookups.get(series_id, {}).get(period)
        if raw_value is None:
            logger.info("Metric %s (%s) has no value for %s, omitted", metric_key, series_id, period)
            continue
        metrics[metric_key] = extract_direct_metric(raw_value, spec.definition_for(metric_key))
    return metrics


def percent_change(lookup: dict[str, float], period: str, lag_months: int) -> Maybe:
    current = lookup.get(period)
    reference_period = format_period(subtract_months(parse(period), lag_months))
    reference = lookup.get(reference_period)
    if current is None or reference is None:
        return ABSENT
    if reference == 0:
        return ABSENT
    return Present(((current / reference) - 1) * 100)


def compute_derived_metrics(
    spec: DatasetSpec,
    series_ids: dict[str, str],
    lookups: dict[str, dict[str, float]],
    period: str,
) -> dict[str, dict]:
    metrics: dict[str, dict] = {}
    for metric_key, definition in spec.derived_metrics.items():
        series_id = series_ids.get(definition.source_metric)
        if not series_id:
            raise ConfigurationError(
                f"Derived metric {metric_key} needs series for {definition.source_metric}, none configured"
            )
        change = percent_change(lookups.get(series_id, {}), period, definition.lag_months)
        if not is_present(change):
            reference = format_period(subtract_months(parse(period), definition.lag_months))
            logger.info(
                "Derived metric %s omitted for %s: missing %s at %s or %s",
                metric_key,
                period,
                series_id,
                period,
                reference,
            )
            continue
        display_value = round_half_up(change.value, definition.precision)
        metrics[metric_key] = structured_metric(
            change.value,
            display_value,
            definition.unit,
            1.0,
            definition.precision,
        )
    return metrics
