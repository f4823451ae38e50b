"""Candidate release document assembly.

Locked fields (dataset, source, signal, methodology_notes) are copied from the
production document verbatim. Everything else is rebuilt from the normalized
snapshot for the reference period.
"""
from __future__ import annotations

import logging
from copy import deepcopy
from datetime import date, timedelta
from typing import Callable, Optional

from datasets import RELEASE_RULE_FIRST_FRIDAY, RELEASE_RULE_TWELFTH, DatasetSpec
from ledger import build_history
from periods import add_months, format_period, parse
from templates import draft_text, force_signal, metric_value
from values import is_present, to_optional

logger = logging.getLogger(__name__)

EXPECTATIONS_NOTE = "Editorial input. Values sourced manually from consensus surveys. Not first-party data."

# (normalized, production) -> {"headline": ..., "editorial": ...}
Drafter = Callable[[dict, dict], dict]


def release_date(release_rule: str, reference_period: str) -> date:
    """Publication date for data covering reference_period.

    Releases land in the month after the reference month.
    """
    release_month = add_months(parse(reference_period), 1)
    first = date(release_month.year, release_month.month, 1)
    if release_rule == RELEASE_RULE_FIRST_FRIDAY:
        return first + timedelta(days=(4 - first.weekday()) % 7)
    if release_rule == RELEASE_RULE_TWELFTH:
        return first.replace(day=12)
    return first


def next_release_date(release_rule: str, reference_period: str) -> date:
    return release_date(release_rule, format_period(add_months(parse(reference_period), 1)))


def build_metrics(normalized: dict, production_metrics: dict) -> dict:
    metrics: dict[str, dict] = {}
    for key, existing in production_metrics.items():
        existing = existing if isinstance(existing, dict) else {}
        value = metric_value(normalized.get("metrics"), key)
        if not is_present(value):
            logger.info("Metric %s missing from normalized snapshot, value left null", key)
        metrics[key] = {
            "label": existing.get("label"),
            "qualifier": existing.get("qualifier"),
            "value": to_optional(value),
            "unit": existing.get("unit"),
            "precision": existing.get("precision"),
        }
    return metrics


def build_comparisons(normalized: dict, production: dict) -> dict:
    release = production.get("release") or {}
    prior_release: dict = {
        "date": release.get("date"),
        "reference_period": release.get("reference_period"),
    }
    production_metrics = production.get("metrics") or {}
    for key in (normalized.get("metrics") or {}):
        prior = production_metrics.get(key)
        prior_release[key] = {
            "value": prior.get("value") if isinstance(prior, dict) else None,
            "delta": to_optional(metric_value(normalized.get("deltas"), key)),
        }
    comparisons = normalized.get("comparisons") or {}
    return {
        "prior_release": prior_release,
        "twelve_month_average": deepcopy(comparisons.get("twelve_month_average") or {}),
        "trend": deepcopy(comparisons.get("trend") or {}),
    }


def build_expectations(existing: Optional[dict]) -> dict:
    """Keep the expectations layout but blank every value for editorial input."""
    existing = existing or {}
    expectations: dict = {"_note": existing.get("_note") or EXPECTATIONS_NOTE}
    for key, value in existing.items():
        if key == "_note":
            continue
        if isinstance(value, dict):
            expectations[key] = {sub_key: None for sub_key in value}
    return expectations


def template_drafter(spec: DatasetSpec) -> Drafter:
    def draft(normalized: dict, production: dict) -> dict:
        headline, editorial = draft_text(spec.name, spec.title, normalized, production.get("signal"))
        return {"headline": headline, "editorial": editorial}

    return draft


def build_candidate(
    spec: DatasetSpec,
    normalized: dict,
    production: dict,
    generated_at: str,
    drafter: Drafter | None = None,
) -> dict:
    period = normalized["reference_period"]
    drafter = drafter or template_drafter(spec)
    drafted = drafter(normalized, production)
    signal = production.get("signal")

    return {
        "dataset": deepcopy(production.get("dataset")),
        "source": deepcopy(production.get("source")),
        "release": {
            "date": release_date(spec.release_rule, period).isoformat(),
            "reference_period": period,
            "next_release": next_release_date(spec.release_rule, period).isoformat(),
            "generated_at": generated_at,
        },
        "headline": force_signal(drafted["headline"], signal),
        "signal": deepcopy(signal),
        "metrics": build_metrics(normalized, production.get("metrics") or {}),
        "comparisons": build_comparisons(normalized, production),
        "expectations": build_expectations(production.get("expectations")),
        "editorial": dict(drafted["editorial"]),
        "history": build_history(production.get("history"), period),
        "methodology_notes": deepcopy(production.get("methodology_notes")),
    }
