"""Dataset registry.

Each dataset names its BLS series, how raw values become display values, which
metrics are computed from index levels over time, and when releases land.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from errors import ConfigurationError

RELEASE_RULE_FIRST_FRIDAY = "first_friday"
RELEASE_RULE_TWELFTH = "twelfth"
RELEASE_RULE_FIRST_DAY = "first_day"


@dataclass(frozen=True)
class MetricDefinition:
    unit: str = "number"
    scale: float = 1.0
    precision: int = 2


DEFAULT_DEFINITION = MetricDefinition()


@dataclass(frozen=True)
class DerivedMetricDefinition:
    source_metric: str
    lag_months: int
    unit: str = "percent"
    precision: int = 1


@dataclass(frozen=True)
class DatasetSpec:
    name: str
    title: str
    release_rule: str
    series_ids: dict[str, str]
    metric_definitions: dict[str, MetricDefinition]
    derived_metrics: dict[str, DerivedMetricDefinition] = field(default_factory=dict)
    metric_labels: dict[str, tuple[str, str]] = field(default_factory=dict)
    methodology_notes: tuple[str, ...] = ()

    def definition_for(self, metric_key: str) -> MetricDefinition:
        return self.metric_definitions.get(metric_key, DEFAULT_DEFINITION)

    def precision_for(self, metric_key: str) -> int:
        derived = self.derived_metrics.get(metric_key)
        if derived is not None:
            return derived.precision
        return self.definition_for(metric_key).precision

    def unit_for(self, metric_key: str) -> str:
        derived = self.derived_metrics.get(metric_key)
        if derived is not None:
            return derived.unit
        return self.definition_for(metric_key).unit


DATASET_REGISTRY: dict[str, DatasetSpec] = {
    "jobs": DatasetSpec(
        name="jobs",
        title="Jobs Report",
        release_rule=RELEASE_RULE_FIRST_FRIDAY,
        series_ids={
            "payrolls": "CES0000000001",
            "unemployment_rate": "LNS14000000",
            "labor_force_participation": "LNS11300000",
            "average_hourly_earnings": "CES0500000003",
        },
        metric_definitions={
            "payrolls": MetricDefinition(unit="thousands", scale=1.0, precision=0),
            "unemployment_rate": MetricDefinition(unit="percent", scale=1.0, precision=1),
            "labor_force_participation": MetricDefinition(unit="percent", scale=1.0, precision=1),
            "average_hourly_earnings": MetricDefinition(unit="dollars", scale=1.0, precision=2),
        },
        derived_metrics={
            "average_hourly_earnings_yoy": DerivedMetricDefinition(
                source_metric="average_hourly_earnings",
                lag_months=12,
            ),
        },
        metric_labels={
            "payrolls": ("Total Nonfarm Payrolls", "Establishment Survey"),
            "unemployment_rate": ("Unemployment Rate", "Household Survey"),
            "labor_force_participation": ("Labor Force Participation", "Household Survey"),
            "average_hourly_earnings": ("Average Hourly Earnings", "Private Nonfarm"),
            "average_hourly_earnings_yoy": ("Average Hourly Earnings", "Year-over-Year"),
        },
        methodology_notes=(
            "Values are seasonally adjusted BLS series as first published.",
            "Deltas compare against the previously published release, not revised data.",
        ),
    ),
    "inflation": DatasetSpec(
        name="inflation",
        title="Inflation Report",
        release_rule=RELEASE_RULE_TWELFTH,
        series_ids={
            "cpi_all_items": "CUSR0000SA0",
            "cpi_core": "CUSR0000SA0L1E",
        },
        metric_definitions={
            "cpi_all_items": MetricDefinition(unit="index", scale=1.0, precision=1),
            "cpi_core": MetricDefinition(unit="index", scale=1.0, precision=1),
        },
        derived_metrics={
            "cpi_all_items_yoy": DerivedMetricDefinition(source_metric="cpi_all_items", lag_months=12),
            "cpi_core_yoy": DerivedMetricDefinition(source_metric="cpi_core", lag_months=12),
            "cpi_mom": DerivedMetricDefinition(source_metric="cpi_all_items", lag_months=1),
        },
        metric_labels={
            "cpi_all_items": ("Consumer Price Index", "All Items, Index Level"),
            "cpi_core": ("Core CPI", "Less Food and Energy, Index Level"),
            "cpi_all_items_yoy": ("Consumer Price Index", "Year-over-Year"),
            "cpi_core_yoy": ("Core CPI", "Year-over-Year"),
            "cpi_mom": ("Consumer Price Index", "Month-over-Month"),
        },
        methodology_notes=(
            "Percent changes are computed from seasonally adjusted CPI-U index levels.",
            "Year-over-year compares against the same month one year earlier.",
        ),
    ),
}


def get_dataset(name: str) -> DatasetSpec:
    spec = DATASET_REGISTRY.get(name)
    if spec is None:
        known = ", ".join(sorted(DATASET_REGISTRY))
        raise ConfigurationError(f"Unknown dataset {name!r}. Known datasets: {known}")
    return spec
