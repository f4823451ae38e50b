from __future__ import annotations

import unittest

from ledger import append_release, build_history
from periods import shift


class LedgerTests(unittest.TestCase):
    def test_append_to_empty(self) -> None:
        self.assertEqual([{"date": "2026-01", "label": "January 2026"}], append_release([], "2026-01"))

    def test_explicit_label(self) -> None:
        updated = append_release([], "2026-01", "Jan 2026 (revised)", cap=3)
        self.assertEqual([{"date": "2026-01", "label": "Jan 2026 (revised)"}], updated)

    def test_append_is_idempotent(self) -> None:
        once = append_release([{"date": "2025-12", "label": "December 2025"}], "2026-01")
        twice = append_release(once, "2026-01")
        self.assertEqual(once, twice)
        self.assertEqual(["2026-01", "2025-12"], [entry["date"] for entry in twice])

    def test_cap_keeps_newest_five(self) -> None:
        existing = [
            {"date": shift("2025-12", -i), "label": ""}
            for i in range(5)
        ]
        updated = append_release(existing, "2026-01")
        self.assertEqual(5, len(updated))
        self.assertEqual("2026-01", updated[0]["date"])
        self.assertEqual("2025-09", updated[-1]["date"])

    def test_build_history_from_missing_block(self) -> None:
        self.assertEqual(
            {"previous_releases": [{"date": "2025-07", "label": "July 2025"}]},
            build_history(None, "2025-07"),
        )


if __name__ == "__main__":
    unittest.main()
