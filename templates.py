"""Fixed sentence templates for headline and editorial fields.

Every sentence has one numeric slot and one of two verb forms chosen by sign.
A sentence whose input is missing (or, for change sentences, exactly zero at
display precision) is dropped; it is never replaced by a placeholder.

The signal sentence is not composed from data. It comes from the
(State, Pressure) table and is always written into headline.context.
"""
from __future__ import annotations

from enum import Enum
from typing import Callable, Optional

from gate_policy import FALLBACK_SENTENCE
from periods import month_label, parse
from values import ABSENT, Maybe, from_optional, is_present, is_zero


class State(str, Enum):
    ACCELERATING = "accelerating"
    STEADY = "steady"
    DECELERATING = "decelerating"


class Pressure(str, Enum):
    TIGHT = "tight"
    BALANCED = "balanced"
    LOOSE = "loose"


SIGNAL_SENTENCES: dict[tuple[State, Pressure], str] = {
    (State.ACCELERATING, Pressure.TIGHT): "Signal: accelerating and tight.",
    (State.ACCELERATING, Pressure.BALANCED): "Signal: accelerating and balanced.",
    (State.ACCELERATING, Pressure.LOOSE): "Signal: accelerating and loose.",
    (State.STEADY, Pressure.TIGHT): "Signal: steady and tight.",
    (State.STEADY, Pressure.BALANCED): "Signal: steady and balanced.",
    (State.STEADY, Pressure.LOOSE): "Signal: steady and loose.",
    (State.DECELERATING, Pressure.TIGHT): "Signal: decelerating and tight.",
    (State.DECELERATING, Pressure.BALANCED): "Signal: decelerating and balanced.",
    (State.DECELERATING, Pressure.LOOSE): "Signal: decelerating and loose.",
}

_UNMAPPED = [(s, p) for s in State for p in Pressure if (s, p) not in SIGNAL_SENTENCES]
if _UNMAPPED:
    raise RuntimeError(f"Signal table is missing combinations: {_UNMAPPED}")


def signal_sentence(state: Optional[str], pressure: Optional[str]) -> str:
    try:
        key = (State(state), Pressure(pressure))
    except ValueError:
        return f"Signal: state {state or 'unspecified'}, pressure {pressure or 'unspecified'}."
    return SIGNAL_SENTENCES[key]


def signal_sentence_for(signal: dict | None) -> str:
    signal = signal if isinstance(signal, dict) else {}
    return signal_sentence(signal.get("state"), signal.get("pressure"))


def metric_value(section: dict | None, key: str) -> Maybe:
    if not isinstance(section, dict):
        return ABSENT
    metric = section.get(key)
    if isinstance(metric, dict):
        return from_optional(metric.get("display_value", metric.get("value")))
    return from_optional(metric)


def metric_precision(normalized: dict, key: str, default: int = 1) -> int:
    for section in ("metrics", "deltas"):
        metric = (normalized.get(section) or {}).get(key)
        if isinstance(metric, dict) and isinstance(metric.get("precision"), int):
            return metric["precision"]
    return default


def format_magnitude(value: float, precision: int) -> str:
    return f"{abs(value):,.{precision}f}"


def _level(normalized: dict, key: str) -> Maybe:
    return metric_value(normalized.get("metrics"), key)


def _nonzero_delta(normalized: dict, key: str) -> Maybe:
    delta = metric_value(normalized.get("deltas"), key)
    if not is_present(delta) or is_zero(delta):
        return ABSENT
    return delta


def payrolls_sentence(normalized: dict) -> str | None:
    delta = _nonzero_delta(normalized, "payrolls")
    if not is_present(delta):
        return None
    verb = "increased by" if delta.value > 0 else "declined by"
    amount = format_magnitude(delta.value, metric_precision(normalized, "payrolls", 0))
    return f"Nonfarm payrolls {verb} {amount}."


def unemployment_sentence(normalized: dict) -> str | None:
    precision = metric_precision(normalized, "unemployment_rate")
    delta = _nonzero_delta(normalized, "unemployment_rate")
    if is_present(delta):
        verb = "increased by" if delta.value > 0 else "declined by"
        return f"The unemployment rate {verb} {format_magnitude(delta.value, precision)} percentage point."
    level = _level(normalized, "unemployment_rate")
    if is_present(level):
        return f"The unemployment rate stands at {level.value:.{precision}f} percent."
    return None


def participation_sentence(normalized: dict) -> str | None:
    level = _level(normalized, "labor_force_participation")
    if not is_present(level):
        return None
    precision = metric_precision(normalized, "labor_force_participation")
    return f"Labor force participation stands at {level.value:.{precision}f} percent."


def wages_sentence(normalized: dict) -> str | None:
    delta = _nonzero_delta(normalized, "average_hourly_earnings_yoy")
    if not is_present(delta):
        return None
    verb = "increased by" if delta.value > 0 else "declined by"
    amount = format_magnitude(delta.value, metric_precision(normalized, "average_hourly_earnings_yoy"))
    return f"Average hourly earnings {verb} {amount} percent."


def cpi_sentence(normalized: dict) -> str | None:
    level = _level(normalized, "cpi_all_items_yoy")
    if not is_present(level):
        return None
    precision = metric_precision(normalized, "cpi_all_items_yoy")
    return f"The Consumer Price Index stands at {level.value:.{precision}f} percent year-over-year."


def core_cpi_sentence(normalized: dict) -> str | None:
    level = _level(normalized, "cpi_core_yoy")
    if not is_present(level):
        return None
    precision = metric_precision(normalized, "cpi_core_yoy")
    return f"Core CPI stands at {level.value:.{precision}f} percent year-over-year."


def cpi_mom_sentence(normalized: dict) -> str | None:
    delta = _nonzero_delta(normalized, "cpi_mom")
    if not is_present(delta):
        return None
    verb = "rose by" if delta.value > 0 else "fell by"
    amount = format_magnitude(delta.value, metric_precision(normalized, "cpi_mom"))
    return f"Monthly prices {verb} {amount} percent."


SentenceBuilder = Callable[[dict], Optional[str]]

TEMPLATE_CATALOG: dict[str, dict[str, tuple[SentenceBuilder, ...]]] = {
    "jobs": {
        "summary": (payrolls_sentence, unemployment_sentence),
        "what_changed": (payrolls_sentence, unemployment_sentence, wages_sentence),
        "what_didnt": (participation_sentence,),
    },
    "inflation": {
        "summary": (cpi_sentence, cpi_mom_sentence),
        "what_changed": (cpi_sentence, cpi_mom_sentence),
        "what_didnt": (core_cpi_sentence,),
    },
}


def compose(builders: tuple[SentenceBuilder, ...], normalized: dict, fallback: str = FALLBACK_SENTENCE) -> str:
    sentences = [s for s in (builder(normalized) for builder in builders) if s]
    return " ".join(sentences) if sentences else fallback


def _title(dataset: str, normalized: dict, label: str) -> str | None:
    if dataset == "jobs":
        delta = _nonzero_delta(normalized, "payrolls")
        if not is_present(delta):
            return None
        verb = "increased by" if delta.value > 0 else "declined by"
        amount = format_magnitude(delta.value, metric_precision(normalized, "payrolls", 0))
        return f"Payrolls {verb} {amount} in {label}"
    if dataset == "inflation":
        level = _level(normalized, "cpi_all_items_yoy")
        if not is_present(level):
            return None
        precision = metric_precision(normalized, "cpi_all_items_yoy")
        return f"Inflation measured {level.value:.{precision}f} percent year-over-year in {label}"
    return None


def build_headline(dataset: str, report_title: str, normalized: dict, signal: dict | None) -> dict:
    label = month_label(parse(normalized["reference_period"]))
    title = _title(dataset, normalized, label)
    catalog = TEMPLATE_CATALOG.get(dataset, {})
    if title is None:
        headline = {"title": f"{report_title}: {label}", "summary": FALLBACK_SENTENCE}
    else:
        headline = {"title": title, "summary": compose(catalog.get("summary", ()), normalized)}
    headline["context"] = signal_sentence_for(signal)
    return headline


def build_editorial(dataset: str, normalized: dict) -> dict:
    catalog = TEMPLATE_CATALOG.get(dataset, {})
    return {
        "what_changed": compose(catalog.get("what_changed", ()), normalized),
        "what_didnt": compose(catalog.get("what_didnt", ()), normalized, fallback=""),
        "why_it_matters": "",
        "revision_note": "",
        "editor_note": "",
    }


def force_signal(headline: dict, signal: dict | None) -> dict:
    """Overwrite headline.context with the table sentence, whatever it held."""
    forced = dict(headline)
    forced["context"] = signal_sentence_for(signal)
    return forced


def draft_text(dataset: str, report_title: str, normalized: dict, signal: dict | None) -> tuple[dict, dict]:
    headline = build_headline(dataset, report_title, normalized, signal)
    editorial = build_editorial(dataset, normalized)
    return force_signal(headline, signal), editorial
