from __future__ import annotations

import unittest

from errors import FormatError
from periods import YearMonth, add_months, format_period, month_label, parse, shift, subtract_months
from values import ABSENT, Present, from_optional, is_present, is_zero, to_optional


class PeriodTests(unittest.TestCase):
    def test_parse_valid_period(self) -> None:
        self.assertEqual(YearMonth(2025, 1), parse("2025-01"))
        self.assertEqual("2025-01", str(parse("2025-01")))

    def test_parse_rejects_malformed(self) -> None:
        for bad in ("2025-13", "2025-00", "2025-1", "25-01", "January 2025", ""):
            with self.subTest(value=bad):
                with self.assertRaises(FormatError):
                    parse(bad)
        self.assertTrue(issubclass(FormatError, ValueError))

    def test_month_rollover_both_directions(self) -> None:
        self.assertEqual(YearMonth(2025, 1), add_months(YearMonth(2024, 12), 1))
        self.assertEqual(YearMonth(2024, 12), subtract_months(YearMonth(2025, 1), 1))
        self.assertEqual(YearMonth(2024, 1), subtract_months(YearMonth(2025, 12), 23))
        self.assertEqual(YearMonth(2027, 3), add_months(YearMonth(2025, 3), 24))

    def test_format_and_label(self) -> None:
        self.assertEqual("0999-04", format_period(YearMonth(999, 4)))
        self.assertEqual("January 2026", month_label(YearMonth(2026, 1)))
        self.assertEqual("December 2024", month_label(parse("2024-12")))

    def test_shift(self) -> None:
        self.assertEqual("2024-03", shift("2025-03", -12))
        self.assertEqual("2026-01", shift("2025-12", 1))


class TaggedValueTests(unittest.TestCase):
    def test_present_zero_is_not_absent(self) -> None:
        zero = from_optional(0)
        self.assertTrue(is_present(zero))
        self.assertTrue(is_zero(zero))
        self.assertEqual(0.0, to_optional(zero))

    def test_missing_inputs_are_absent(self) -> None:
        for raw in (None, "4.1", True, float("nan"), {"value": 1}):
            with self.subTest(raw=raw):
                self.assertIs(ABSENT, from_optional(raw))
        self.assertIsNone(to_optional(ABSENT))

    def test_absent_cannot_be_used_as_a_number(self) -> None:
        with self.assertRaises(TypeError):
            bool(ABSENT)
        with self.assertRaises(TypeError):
            is_zero(ABSENT)

    def test_present_value(self) -> None:
        item = from_optional(-0.2)
        self.assertEqual(Present(-0.2), item)
        self.assertFalse(is_zero(item))


if __name__ == "__main__":
    unittest.main()
