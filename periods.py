"""Calendar arithmetic over year-month reference periods.

Periods are plain (year, month) integers with no timezone dependency.
"""
from __future__ import annotations

import re
from typing import NamedTuple

from errors import FormatError

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

_PERIOD_RE = re.compile(r"^(\d{4})-(\d{2})$")


class YearMonth(NamedTuple):
    year: int
    month: int

    def __str__(self) -> str:
        return format_period(self)


def parse(value: str) -> YearMonth:
    if not isinstance(value, str):
        raise FormatError(f"Period must be a string in YYYY-MM format, got {value!r}")
    match = _PERIOD_RE.match(value)
    if match is None:
        raise FormatError(f"Malformed period {value!r}, expected YYYY-MM")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise FormatError(f"Malformed period {value!r}, month must be 01-12")
    return YearMonth(year, month)


def add_months(period: YearMonth, n: int) -> YearMonth:
    index = period.year * 12 + (period.month - 1) + n
    year, month0 = divmod(index, 12)
    return YearMonth(year, month0 + 1)


def subtract_months(period: YearMonth, n: int) -> YearMonth:
    return add_months(period, -n)


def format_period(period: YearMonth) -> str:
    return f"{period.year:04d}-{period.month:02d}"


def month_label(period: YearMonth) -> str:
    return f"{MONTH_NAMES[period.month - 1]} {period.year}"


def shift(value: str, n: int) -> str:
    """String-in, string-out convenience over add_months."""
    return format_period(add_months(parse(value), n))
