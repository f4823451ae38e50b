"""Tagged optional numbers.

A value is either Present(x) or ABSENT. Presence and zero-ness are separate
questions: a present zero is a real observation and must never be treated as
missing, and a missing value must never enter arithmetic as zero.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Present:
    value: float


class _Absent:
    _instance: "_Absent | None" = None

    def __new__(cls) -> "_Absent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        raise TypeError("ABSENT has no truth value, use is_present()")


ABSENT = _Absent()

Maybe = Union[Present, _Absent]


def is_present(item: Maybe) -> bool:
    return isinstance(item, Present)


def is_zero(item: Maybe) -> bool:
    if not isinstance(item, Present):
        raise TypeError("is_zero() requires a present value")
    return item.value == 0


def from_optional(value: object) -> Maybe:
    # bool is an int subclass but never a metric value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return ABSENT
    if value != value:  # NaN
        return ABSENT
    return Present(float(value))


def to_optional(item: Maybe) -> float | None:
    return item.value if isinstance(item, Present) else None
