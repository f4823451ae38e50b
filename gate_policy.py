from __future__ import annotations

from copy import deepcopy

METHOD_VERSION = "v2.1.0"

TREND_LENGTH = 24
HISTORY_MONTHS = TREND_LENGTH - 1
MAX_TREND_NULLS = 12
AVERAGE_WINDOW = 12
HISTORY_CAP = 5

FALLBACK_SENTENCE = "No material changes were recorded in this release."

# (name, regex) pairs. Hard patterns block promotion, soft patterns only warn.
HARD_PATTERNS: tuple[tuple[str, str], ...] = (
    ("em-dash", "—"),
    ("semicolon", ";"),
    ("exclamation point", "!"),
)

SOFT_PATTERNS: tuple[tuple[str, str], ...] = (
    ("Furthermore", r"\bFurthermore\b"),
    ("Moreover", r"\bMoreover\b"),
    ("Additionally", r"\bAdditionally\b"),
    ("Nevertheless", r"\bNevertheless\b"),
    ("Consequently", r"\bConsequently\b"),
    ("It's worth noting", r"\bIt'?s worth noting\b"),
    ("It should be noted", r"\bIt should be noted\b"),
    ("It is important", r"\bIt is important\b"),
    ("Notably", r"\bNotably\b"),
    ("Significantly", r"\bSignificantly\b"),
    ("Interestingly", r"\bInterestingly\b"),
    ("Importantly", r"\bImportantly\b"),
    ("This is significant", r"\bThis is significant\b"),
    ("In terms of", r"\bIn terms of\b"),
    ("When it comes to", r"\bWhen it comes to\b"),
    ("Given the fact", r"\bGiven the fact\b"),
    ("utilize", r"\butilize\b"),
    ("leverage", r"\bleverage\b"),
    ("robust", r"\brobust\b"),
)

FORBIDDEN_PHRASES: tuple[str, ...] = (
    "informs policy",
    "suggests implications",
    "affects decisions",
    "points to",
    "indicates that",
    "implies",
    "signals that",
)

# Dotted paths into the release document.
LINTED_FIELDS: tuple[str, ...] = (
    "headline.title",
    "headline.summary",
    "headline.context",
    "editorial.what_changed",
    "editorial.what_didnt",
    "editorial.why_it_matters",
    "editorial.revision_note",
    "editorial.editor_note",
)

INTERPRETATION_FIELDS: tuple[str, ...] = (
    "editorial.what_changed",
    "editorial.what_didnt",
    "editorial.why_it_matters",
)

SIGNAL_FIELD = "headline.context"

# Copied from production by the draft stage and never edited afterwards.
LOCKED_FIELDS: tuple[str, ...] = ("signal", "source", "methodology_notes", "dataset")

GATE_POLICY: dict = {
    "trend_length": TREND_LENGTH,
    "max_trend_nulls": MAX_TREND_NULLS,
    "average_window": AVERAGE_WINDOW,
    "history_cap": HISTORY_CAP,
    "signal_field": SIGNAL_FIELD,
    "locked_fields": list(LOCKED_FIELDS),
    "hard_patterns": [name for name, _ in HARD_PATTERNS],
    "soft_patterns": [name for name, _ in SOFT_PATTERNS],
    "forbidden_phrases": list(FORBIDDEN_PHRASES),
    "linted_fields": list(LINTED_FIELDS),
    "interpretation_fields": list(INTERPRETATION_FIELDS),
    "numeric_audit": {
        "level_verbs": ["stands at", "is at", "reached", "totaled", "measured"],
        "delta_verbs": ["rose by", "fell by", "increased by", "declined by", "added", "shed"],
        "skipped_when_no_auditor": True,
    },
}


def gate_policy_payload() -> dict:
    payload = deepcopy(GATE_POLICY)
    payload["method_version"] = METHOD_VERSION
    return payload
