"""Publish gate: deterministic checks, the optional numeric audit, promotion.

The candidate is judged against the production document it would replace:
the signal sentence comes from the production signal, and locked fields must
be unchanged. Deterministic checks always run and any failure blocks promotion. The numeric
audit runs only when they pass. The audit report is written on every run, and
a PASS moves the candidate over the production document with one os.replace.
"""
from __future__ import annotations

import json
import logging
import os
import re
import sqlite3
import uuid
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from errors import AuditorError
from gate_policy import (
    FORBIDDEN_PHRASES,
    HARD_PATTERNS,
    INTERPRETATION_FIELDS,
    LINTED_FIELDS,
    LOCKED_FIELDS,
    SIGNAL_FIELD,
    SOFT_PATTERNS,
)
from models import AuditReport, ReleaseDocument
from storage import DataLayout, write_json_atomic
from templates import signal_sentence_for

logger = logging.getLogger(__name__)

_HARD_RES = [(name, re.compile(re.escape(pattern))) for name, pattern in HARD_PATTERNS]
_SOFT_RES = [(name, re.compile(pattern, re.IGNORECASE)) for name, pattern in SOFT_PATTERNS]

FLAG_NO_AI_AUDIT = "NO_AI_AUDIT"
FLAG_AI_ERROR = "AI_ERROR"


class Auditor(Protocol):
    def audit(self, document: dict) -> dict: ...


def field_text(document: dict, dotted: str) -> str:
    node: object = document
    for part in dotted.split("."):
        if not isinstance(node, dict):
            return ""
        node = node.get(part)
    return node if isinstance(node, str) else ""


def linted_text(document: dict, fields: tuple[str, ...] = LINTED_FIELDS) -> str:
    return "\n".join(text for text in (field_text(document, f) for f in fields) if text)


def run_linter(document: dict) -> dict:
    text = linted_text(document)
    errors: list[str] = []
    warnings: list[str] = []
    counts: dict[str, int] = {}
    for name, pattern in _HARD_RES:
        found = len(pattern.findall(text))
        if found:
            counts[name] = found
            errors.append(f"Found {found} instance(s) of banned pattern: {name}")
    for name, pattern in _SOFT_RES:
        found = len(pattern.findall(text))
        if found:
            counts[name] = found
            warnings.append(f"Found {found} instance(s) of: {name}")
    return {"errors": errors, "warnings": warnings, "counts": counts}


def check_signal_sentence(document: dict, production: dict) -> str | None:
    """Exact, character-for-character comparison with the production signal sentence."""
    context = field_text(document, SIGNAL_FIELD)
    if not context:
        return f"Missing {SIGNAL_FIELD}"
    expected = signal_sentence_for(production.get("signal"))
    if context != expected:
        return f'Signal sentence mismatch. Expected: "{expected}" Got: "{context}"'
    return None


def check_locked_fields(document: dict, production: dict) -> list[str]:
    return [
        f"Locked field changed: {field}"
        for field in LOCKED_FIELDS
        if document.get(field) != production.get(field)
    ]


def check_forbidden_phrases(document: dict) -> list[str]:
    text = " ".join(field_text(document, f) for f in INTERPRETATION_FIELDS).lower()
    return [f'Forbidden phrase found: "{phrase}"' for phrase in FORBIDDEN_PHRASES if phrase.lower() in text]


def check_schema(document: dict) -> list[str]:
    try:
        ReleaseDocument.model_validate(document)
    except ValidationError as err:
        return [f"Schema validation error: {err.error_count()} issue(s): {err.errors()[0]['msg']}"]
    return []


def run_numeric_audit(document: dict, auditor: Auditor | None) -> dict:
    if auditor is None:
        logger.warning("No auditor configured, skipping numeric audit")
        return {
            "status": "PASS",
            "reason": "Numeric audit skipped (no API key). Deterministic checks passed.",
            "flags": [FLAG_NO_AI_AUDIT],
            "skipped": True,
        }
    try:
        result = auditor.audit(document)
    except AuditorError as err:
        logger.error("Numeric audit error: %s", err)
        return {"status": "FAIL", "reason": f"AI audit error: {err}", "flags": [FLAG_AI_ERROR], "skipped": False}
    return {**result, "skipped": False}


def report_period(document: dict) -> str | None:
    release = document.get("release")
    if not isinstance(release, dict):
        return None
    period = release.get("reference_period")
    return period if isinstance(period, str) else None


def evaluate_candidate(
    document: dict,
    production: dict,
    auditor: Auditor | None,
    *,
    dataset: str,
    candidate_path: str,
    timestamp: str,
    run_id: str | None = None,
) -> dict:
    linter = run_linter(document)
    blocked: list[str] = list(linter["errors"])
    signal_error = check_signal_sentence(document, production)
    if signal_error:
        blocked.append(signal_error)
    blocked.extend(check_locked_fields(document, production))
    blocked.extend(check_forbidden_phrases(document))
    blocked.extend(check_schema(document))

    fail_reason = None
    if blocked:
        numeric_check = {"status": "NOT_RUN", "reason": "Deterministic checks failed.", "flags": [], "skipped": True}
        fail_reason = "Linter errors" if linter["errors"] else blocked[0]
    else:
        numeric_check = run_numeric_audit(document, auditor)
        if numeric_check["status"] != "PASS":
            fail_reason = numeric_check.get("reason") or "Numeric audit failed"
            blocked.append(f"Numeric audit failed: {fail_reason}")

    report = {
        "run_id": run_id or f"review_{uuid.uuid4().hex[:12]}",
        "timestamp": timestamp,
        "dataset": dataset,
        "reference_period": report_period(document),
        "candidate_path": candidate_path,
        "linter": linter,
        "blocked_conditions": blocked,
        "numeric_check": numeric_check,
        "final_status": "FAIL" if blocked else "PASS",
        "fail_reason": fail_reason,
    }
    return AuditReport.model_validate(report).model_dump(mode="json")


def promote_candidate(layout: DataLayout) -> Path:
    os.replace(layout.candidate_path, layout.production_path)
    logger.info("Promoted %s -> %s", layout.candidate_path, layout.production_path)
    return layout.production_path


def write_report(layout: DataLayout, report: dict) -> Path:
    write_json_atomic(layout.review_path, report)
    return layout.review_path


def ensure_release_db(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS release_runs (
                run_id TEXT PRIMARY KEY,
                created_at TEXT NOT NULL,
                dataset TEXT NOT NULL,
                reference_period TEXT,
                status TEXT NOT NULL,
                blocked_conditions TEXT NOT NULL,
                report_path TEXT NOT NULL
            )
            """
        )
        conn.commit()


def record_release_run(db_path: Path, report: dict, report_path: Path) -> None:
    ensure_release_db(db_path)
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            "INSERT OR REPLACE INTO release_runs "
            "(run_id, created_at, dataset, reference_period, status, blocked_conditions, report_path) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                report["run_id"],
                report["timestamp"],
                report["dataset"],
                report.get("reference_period"),
                report["final_status"],
                json.dumps(report["blocked_conditions"]),
                str(report_path),
            ),
        )
        conn.commit()


def latest_release_run(db_path: Path, dataset: str | None = None) -> dict | None:
    if not db_path.exists():
        return None
    query = (
        "SELECT run_id, created_at, dataset, reference_period, status, blocked_conditions, report_path "
        "FROM release_runs"
    )
    params: tuple = ()
    if dataset:
        query += " WHERE dataset = ?"
        params = (dataset,)
    query += " ORDER BY created_at DESC LIMIT 1"
    with sqlite3.connect(db_path) as conn:
        row = conn.execute(query, params).fetchone()
    if row is None:
        return None
    run_id, created_at, row_dataset, reference_period, status, blocked_conditions, report_path = row
    try:
        blocked = json.loads(blocked_conditions)
    except json.JSONDecodeError:
        blocked = []
    return {
        "run_id": run_id,
        "created_at": created_at,
        "dataset": row_dataset,
        "reference_period": reference_period,
        "status": status,
        "blocked_conditions": blocked,
        "report_path": report_path,
    }


def review_candidate(
    layout: DataLayout,
    document: dict,
    production: dict,
    auditor: Auditor | None,
    timestamp: str,
) -> dict:
    """Evaluate, always write the report, record the run, promote on PASS."""
    report = evaluate_candidate(
        document,
        production,
        auditor,
        dataset=layout.dataset,
        candidate_path=str(layout.candidate_path),
        timestamp=timestamp,
    )
    report_path = write_report(layout, report)
    record_release_run(layout.release_db_path, report, report_path)
    if report["final_status"] == "PASS":
        promote_candidate(layout)
    else:
        logger.error("Review failed: %s. Candidate kept at %s", report["fail_reason"], layout.candidate_path)
    return report
