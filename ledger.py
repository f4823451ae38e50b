from __future__ import annotations

import logging

from gate_policy import HISTORY_CAP
from periods import month_label, parse

logger = logging.getLogger(__name__)


def append_release(
    previous_releases: list[dict],
    reference_period: str,
    label: str | None = None,
    cap: int = HISTORY_CAP,
) -> list[dict]:
    """Prepend a release entry, newest first, keeping at most `cap` entries.

    The label defaults to the month label of `reference_period`.

    Appending a period that is already listed returns the ledger unchanged, so
    re-running the draft stage for the same month never duplicates it.
    """
    if label is None:
        label = month_label(parse(reference_period))
    existing = [dict(entry) for entry in previous_releases if isinstance(entry, dict)]
    if any(entry.get("date") == reference_period for entry in existing):
        logger.info("Period %s already in history, skipping duplicate", reference_period)
        return existing[:cap]
    return [{"date": reference_period, "label": label}] + existing[: cap - 1]


def build_history(history: dict | None, reference_period: str) -> dict:
    previous = (history or {}).get("previous_releases") or []
    return {"previous_releases": append_release(previous, reference_period)}
