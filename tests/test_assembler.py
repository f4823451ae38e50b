from __future__ import annotations

import unittest
from datetime import date

from assembler import (
    build_candidate,
    build_comparisons,
    build_expectations,
    build_metrics,
    next_release_date,
    release_date,
)
from datasets import RELEASE_RULE_FIRST_DAY, RELEASE_RULE_FIRST_FRIDAY, RELEASE_RULE_TWELFTH, get_dataset


def structured(display: float, precision: int = 1, unit: str = "percent") -> dict:
    return {"raw_value": display, "display_value": display, "unit": unit, "scale": 1.0, "precision": precision}


def production_document() -> dict:
    return {
        "dataset": "jobs",
        "source": {"name": "U.S. Bureau of Labor Statistics", "series_ids": {"payrolls": "CES0000000001"}},
        "release": {"date": "2026-01-09", "reference_period": "2025-12", "next_release": "2026-02-06"},
        "headline": {"title": "old", "summary": "old", "context": "old"},
        "signal": {"state": "decelerating", "pressure": "tight", "confidence": "medium", "note": "locked"},
        "metrics": {
            "payrolls": {
                "label": "Total Nonfarm Payrolls",
                "qualifier": "Establishment Survey",
                "value": 159000.0,
                "unit": "thousands",
                "precision": 0,
            },
            "unemployment_rate": {
                "label": "Unemployment Rate",
                "qualifier": "Household Survey",
                "value": 4.2,
                "unit": "percent",
                "precision": 1,
            },
        },
        "comparisons": {},
        "expectations": {"_note": "Consensus note.", "payrolls": {"consensus": 150.0, "low": 100.0}, "stray": 1},
        "editorial": {},
        "history": {"previous_releases": [{"date": "2025-12", "label": "December 2025"}]},
        "methodology_notes": ["Seasonally adjusted."],
    }


def normalized_snapshot() -> dict:
    return {
        "reference_period": "2026-01",
        "fetched_at": "2026-02-06T13:30:00+00:00",
        "metrics": {
            "payrolls": structured(159256.0, 0, "thousands"),
            "unemployment_rate": structured(4.2),
        },
        "deltas": {"payrolls": structured(256.0, 0, "thousands")},
        "comparisons": {
            "prior_release": {},
            "twelve_month_average": {"payrolls": 158900.0},
            "trend": {"payrolls": [None] * 23 + [159256.0]},
        },
    }


class ReleaseDateTests(unittest.TestCase):
    def test_jobs_first_friday_of_following_month(self) -> None:
        self.assertEqual(date(2026, 3, 6), release_date(RELEASE_RULE_FIRST_FRIDAY, "2026-02"))

    def test_first_friday_when_month_starts_on_friday(self) -> None:
        self.assertEqual(date(2026, 5, 1), release_date(RELEASE_RULE_FIRST_FRIDAY, "2026-04"))

    def test_inflation_twelfth_across_year_end(self) -> None:
        self.assertEqual(date(2026, 1, 12), release_date(RELEASE_RULE_TWELFTH, "2025-12"))

    def test_other_datasets_first_of_month(self) -> None:
        self.assertEqual(date(2026, 1, 1), release_date(RELEASE_RULE_FIRST_DAY, "2025-12"))

    def test_next_release_is_one_month_further(self) -> None:
        self.assertEqual(date(2026, 4, 3), next_release_date(RELEASE_RULE_FIRST_FRIDAY, "2026-02"))
        self.assertEqual(date(2026, 2, 12), next_release_date(RELEASE_RULE_TWELFTH, "2025-12"))


class CandidatePartsTests(unittest.TestCase):
    def test_metrics_keep_production_labels(self) -> None:
        metrics = build_metrics(normalized_snapshot(), production_document()["metrics"])
        self.assertEqual(159256.0, metrics["payrolls"]["value"])
        self.assertEqual("Total Nonfarm Payrolls", metrics["payrolls"]["label"])
        self.assertEqual(0, metrics["payrolls"]["precision"])

    def test_metric_missing_from_snapshot_is_null(self) -> None:
        snapshot = normalized_snapshot()
        del snapshot["metrics"]["unemployment_rate"]
        metrics = build_metrics(snapshot, production_document()["metrics"])
        self.assertIsNone(metrics["unemployment_rate"]["value"])

    def test_comparisons_never_zero_fill_missing_delta(self) -> None:
        comparisons = build_comparisons(normalized_snapshot(), production_document())
        prior = comparisons["prior_release"]
        self.assertEqual("2026-01-09", prior["date"])
        self.assertEqual("2025-12", prior["reference_period"])
        self.assertEqual({"value": 159000.0, "delta": 256.0}, prior["payrolls"])
        self.assertEqual({"value": 4.2, "delta": None}, prior["unemployment_rate"])
        self.assertEqual(24, len(comparisons["trend"]["payrolls"]))

    def test_expectations_are_nulled(self) -> None:
        expectations = build_expectations(production_document()["expectations"])
        self.assertEqual(
            {"_note": "Consensus note.", "payrolls": {"consensus": None, "low": None}},
            expectations,
        )


class BuildCandidateTests(unittest.TestCase):
    def test_locked_fields_copied_verbatim(self) -> None:
        production = production_document()
        candidate = build_candidate(get_dataset("jobs"), normalized_snapshot(), production, "2026-02-06T14:00:00+00:00")
        for key in ("dataset", "source", "signal", "methodology_notes"):
            self.assertEqual(production[key], candidate[key])
        self.assertEqual("2026-02-06", candidate["release"]["date"])
        self.assertEqual("2026-03-06", candidate["release"]["next_release"])
        self.assertEqual("2026-01", candidate["release"]["reference_period"])
        self.assertEqual("Payrolls increased by 256 in January 2026", candidate["headline"]["title"])
        self.assertEqual(
            ["2026-01", "2025-12"],
            [entry["date"] for entry in candidate["history"]["previous_releases"]],
        )

    def test_signal_sentence_overrides_drafter(self) -> None:
        def drafter(normalized: dict, production: dict) -> dict:
            return {
                "headline": {"title": "t", "summary": "s", "context": "Signal: decelerating, tight."},
                "editorial": {"what_changed": "w", "what_didnt": "", "why_it_matters": "", "revision_note": "", "editor_note": ""},
            }

        candidate = build_candidate(
            get_dataset("jobs"),
            normalized_snapshot(),
            production_document(),
            "2026-02-06T14:00:00+00:00",
            drafter=drafter,
        )
        self.assertEqual("Signal: decelerating and tight.", candidate["headline"]["context"])
        self.assertEqual("w", candidate["editorial"]["what_changed"])


if __name__ == "__main__":
    unittest.main()
