from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock

from errors import AuditorError
from gate import (
    check_forbidden_phrases,
    check_locked_fields,
    check_schema,
    check_signal_sentence,
    evaluate_candidate,
    latest_release_run,
    promote_candidate,
    review_candidate,
    run_linter,
)
from storage import DataLayout, read_json, write_json_atomic
from templates import signal_sentence_for

TIMESTAMP = "2026-02-06T14:00:00+00:00"


def candidate_document() -> dict:
    return {
        "dataset": "jobs",
        "source": {"name": "U.S. Bureau of Labor Statistics", "series_ids": {"payrolls": "CES0000000001"}},
        "release": {"date": "2026-02-06", "reference_period": "2026-01", "next_release": "2026-03-06"},
        "headline": {
            "title": "Payrolls increased by 256 in January 2026",
            "summary": "Nonfarm payrolls increased by 256.",
            "context": "Signal: decelerating and tight.",
        },
        "signal": {"state": "decelerating", "pressure": "tight", "confidence": "medium"},
        "metrics": {
            "payrolls": {
                "label": "Total Nonfarm Payrolls",
                "qualifier": "Establishment Survey",
                "value": 159256.0,
                "unit": "thousands",
                "precision": 0,
            }
        },
        "comparisons": {"prior_release": {"payrolls": {"value": 159000.0, "delta": 256.0}}},
        "expectations": {},
        "editorial": {
            "what_changed": "Nonfarm payrolls increased by 256.",
            "what_didnt": "",
            "why_it_matters": "",
            "revision_note": "",
            "editor_note": "",
        },
        "history": {"previous_releases": [{"date": "2026-01", "label": "January 2026"}]},
        "methodology_notes": [],
    }


def evaluate(document: dict, auditor=None, production: dict | None = None) -> dict:
    return evaluate_candidate(
        document,
        production if production is not None else candidate_document(),
        auditor,
        dataset="jobs",
        candidate_path="data/latest.jobs.candidate.json",
        timestamp=TIMESTAMP,
    )


class LinterTests(unittest.TestCase):
    def test_hard_patterns_are_errors(self) -> None:
        document = candidate_document()
        document["editorial"]["what_changed"] = "Payrolls rose; wages held — steady!"
        result = run_linter(document)
        self.assertEqual(3, len(result["errors"]))
        self.assertIn("Found 1 instance(s) of banned pattern: semicolon", result["errors"])
        self.assertEqual(1, result["counts"]["em-dash"])

    def test_soft_patterns_are_warnings_only(self) -> None:
        document = candidate_document()
        document["editorial"]["what_didnt"] = "Moreover, participation was unchanged."
        result = run_linter(document)
        self.assertEqual([], result["errors"])
        self.assertEqual(["Found 1 instance(s) of: Moreover"], result["warnings"])

    def test_soft_patterns_are_case_insensitive(self) -> None:
        document = candidate_document()
        document["editorial"]["editor_note"] = "The data remain ROBUST and robust."
        self.assertIn("Found 2 instance(s) of: robust", run_linter(document)["warnings"])

    def test_unlinted_fields_are_ignored(self) -> None:
        document = candidate_document()
        document["methodology_notes"] = ["Semicolons; are fine here!"]
        self.assertEqual([], run_linter(document)["errors"])


class DeterministicCheckTests(unittest.TestCase):
    def test_signal_sentence_exact_match(self) -> None:
        self.assertIsNone(check_signal_sentence(candidate_document(), candidate_document()))

    def test_single_character_signal_mismatch_fails(self) -> None:
        document = candidate_document()
        document["headline"]["context"] = "Signal: decelerating and tight"
        self.assertIn("Signal sentence mismatch", check_signal_sentence(document, candidate_document()))
        report = evaluate(document)
        self.assertEqual("FAIL", report["final_status"])

    def test_missing_signal_sentence(self) -> None:
        document = candidate_document()
        document["headline"]["context"] = ""
        self.assertEqual("Missing headline.context", check_signal_sentence(document, candidate_document()))

    def test_forbidden_phrase(self) -> None:
        document = candidate_document()
        document["editorial"]["why_it_matters"] = "This Points To a slowdown."
        self.assertEqual(['Forbidden phrase found: "points to"'], check_forbidden_phrases(document))
        self.assertEqual("FAIL", evaluate(document)["final_status"])

    def test_schema_violation_blocks(self) -> None:
        document = candidate_document()
        del document["dataset"]
        self.assertEqual(1, len(check_schema(document)))
        self.assertEqual("FAIL", evaluate(document)["final_status"])

    def test_signal_sentence_comes_from_production(self) -> None:
        document = candidate_document()
        document["signal"] = {"state": "accelerating", "pressure": "loose", "confidence": "medium"}
        document["headline"]["context"] = signal_sentence_for(document["signal"])
        self.assertIn("Signal sentence mismatch", check_signal_sentence(document, candidate_document()))
        self.assertEqual(["Locked field changed: signal"], check_locked_fields(document, candidate_document()))
        report = evaluate(document)
        self.assertEqual("FAIL", report["final_status"])
        self.assertEqual("NOT_RUN", report["numeric_check"]["status"])

    def test_locked_field_change_blocks(self) -> None:
        document = candidate_document()
        document["source"]["series_ids"]["payrolls"] = "CES0000000002"
        document["methodology_notes"] = ["Edited note."]
        report = evaluate(document)
        self.assertEqual("FAIL", report["final_status"])
        self.assertIn("Locked field changed: source", report["blocked_conditions"])
        self.assertIn("Locked field changed: methodology_notes", report["blocked_conditions"])

    def test_malformed_release_still_reports(self) -> None:
        for release in ("2025-12", {"reference_period": 202512}):
            with self.subTest(release=release):
                document = candidate_document()
                document["release"] = release
                report = evaluate(document)
                self.assertEqual("FAIL", report["final_status"])
                self.assertIsNone(report["reference_period"])
                self.assertTrue(any(c.startswith("Schema validation error") for c in report["blocked_conditions"]))


class NumericAuditTests(unittest.TestCase):
    def test_pass_without_auditor_records_flag(self) -> None:
        report = evaluate(candidate_document())
        self.assertEqual("PASS", report["final_status"])
        self.assertEqual(["NO_AI_AUDIT"], report["numeric_check"]["flags"])
        self.assertTrue(report["numeric_check"]["skipped"])
        self.assertIsNone(report["fail_reason"])

    def test_auditor_not_called_when_deterministic_checks_fail(self) -> None:
        auditor = MagicMock()
        document = candidate_document()
        document["headline"]["summary"] = "Payrolls rose!"
        report = evaluate(document, auditor)
        auditor.audit.assert_not_called()
        self.assertEqual("Linter errors", report["fail_reason"])
        self.assertEqual("NOT_RUN", report["numeric_check"]["status"])

    def test_auditor_fail(self) -> None:
        auditor = MagicMock()
        auditor.audit.return_value = {"status": "FAIL", "reason": "Level used as delta", "flags": ["NUMERIC_MISMATCH"]}
        report = evaluate(candidate_document(), auditor)
        self.assertEqual("FAIL", report["final_status"])
        self.assertEqual("Level used as delta", report["fail_reason"])

    def test_auditor_error_fails_gate(self) -> None:
        auditor = MagicMock()
        auditor.audit.side_effect = AuditorError("timeout")
        report = evaluate(candidate_document(), auditor)
        self.assertEqual("FAIL", report["final_status"])
        self.assertEqual(["AI_ERROR"], report["numeric_check"]["flags"])


class PromotionTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.layout = DataLayout(Path(self._tmp.name), "jobs")
        self.production = candidate_document()
        self.production["headline"]["title"] = "Previous release"
        write_json_atomic(self.layout.production_path, self.production)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_promote_replaces_production(self) -> None:
        write_json_atomic(self.layout.candidate_path, candidate_document())
        promote_candidate(self.layout)
        self.assertFalse(self.layout.candidate_path.exists())
        self.assertEqual(candidate_document(), read_json(self.layout.production_path))

    def test_pass_promotes_and_records_run(self) -> None:
        document = candidate_document()
        write_json_atomic(self.layout.candidate_path, document)
        report = review_candidate(self.layout, document, self.production, None, TIMESTAMP)
        self.assertEqual("PASS", report["final_status"])
        self.assertEqual(document, read_json(self.layout.production_path))
        self.assertFalse(self.layout.candidate_path.exists())
        self.assertEqual("PASS", read_json(self.layout.review_path)["final_status"])
        row = latest_release_run(self.layout.release_db_path)
        self.assertEqual("PASS", row["status"])
        self.assertEqual("2026-01", row["reference_period"])
        self.assertEqual([], row["blocked_conditions"])

    def test_edited_signal_is_not_promoted(self) -> None:
        document = candidate_document()
        document["signal"] = {"state": "accelerating", "pressure": "loose", "confidence": "low"}
        document["headline"]["context"] = signal_sentence_for(document["signal"])
        write_json_atomic(self.layout.candidate_path, document)
        report = review_candidate(self.layout, document, self.production, None, TIMESTAMP)
        self.assertEqual("FAIL", report["final_status"])
        self.assertTrue(self.layout.candidate_path.exists())
        self.assertEqual(self.production["signal"], read_json(self.layout.production_path)["signal"])

    def test_malformed_release_writes_report(self) -> None:
        document = candidate_document()
        document["release"] = "2025-12"
        write_json_atomic(self.layout.candidate_path, document)
        report = review_candidate(self.layout, document, self.production, None, TIMESTAMP)
        self.assertEqual("FAIL", report["final_status"])
        self.assertEqual("FAIL", read_json(self.layout.review_path)["final_status"])
        self.assertIsNone(latest_release_run(self.layout.release_db_path)["reference_period"])
        self.assertEqual(self.production, read_json(self.layout.production_path))

    def test_fail_keeps_candidate_and_production(self) -> None:
        document = candidate_document()
        document["editorial"]["what_changed"] = "Payrolls rose; sharply."
        write_json_atomic(self.layout.candidate_path, document)
        report = review_candidate(self.layout, document, self.production, None, TIMESTAMP)
        self.assertEqual("FAIL", report["final_status"])
        self.assertTrue(self.layout.candidate_path.exists())
        self.assertEqual(self.production, read_json(self.layout.production_path))
        review = json.loads(self.layout.review_path.read_text())
        self.assertEqual("FAIL", review["final_status"])
        row = latest_release_run(self.layout.release_db_path, dataset="jobs")
        self.assertEqual("FAIL", row["status"])
        self.assertEqual(1, len(row["blocked_conditions"]))


if __name__ == "__main__":
    unittest.main()
