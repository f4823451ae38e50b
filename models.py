from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gate_policy import TREND_LENGTH

PERIOD_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"

Unit = Literal["thousands", "percent", "dollars", "index", "number"]


class StructuredMetric(BaseModel):
    raw_value: float
    display_value: float
    unit: Unit
    scale: float = 1.0
    precision: int = Field(ge=0)


class NormalizedComparisons(BaseModel):
    prior_release: dict[str, StructuredMetric] = Field(default_factory=dict)
    twelve_month_average: dict[str, float] = Field(default_factory=dict)
    trend: dict[str, list[Optional[float]]] = Field(default_factory=dict)

    @field_validator("trend")
    @classmethod
    def trend_is_full_window(cls, value: dict[str, list[Optional[float]]]) -> dict[str, list[Optional[float]]]:
        for key, values in value.items():
            if len(values) != TREND_LENGTH:
                raise ValueError(f"trend[{key}] has {len(values)} entries, expected {TREND_LENGTH}")
        return value


class NormalizedSnapshot(BaseModel):
    reference_period: str = Field(pattern=PERIOD_PATTERN)
    fetched_at: str
    metrics: dict[str, StructuredMetric]
    deltas: dict[str, StructuredMetric] = Field(default_factory=dict)
    comparisons: NormalizedComparisons = Field(default_factory=NormalizedComparisons)


class SourceInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = ""
    series_ids: dict[str, str] = Field(default_factory=dict)


class Signal(BaseModel):
    model_config = ConfigDict(extra="allow")

    state: Optional[str] = None
    pressure: Optional[str] = None
    confidence: Optional[str] = None


class ReleaseInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    date: Optional[str] = None
    reference_period: Optional[str] = Field(default=None, pattern=PERIOD_PATTERN)
    next_release: Optional[str] = None
    generated_at: Optional[str] = None


class Headline(BaseModel):
    title: str = ""
    summary: str = ""
    context: str = ""


class DocumentMetric(BaseModel):
    model_config = ConfigDict(extra="allow")

    label: str
    qualifier: Optional[str] = None
    value: Optional[float] = None
    unit: Unit
    precision: int = Field(ge=0)


class Editorial(BaseModel):
    what_changed: str = ""
    what_didnt: str = ""
    why_it_matters: str = ""
    revision_note: str = ""
    editor_note: str = ""


class HistoryEntry(BaseModel):
    date: str = Field(pattern=PERIOD_PATTERN)
    label: str


class History(BaseModel):
    previous_releases: list[HistoryEntry] = Field(default_factory=list)

    @field_validator("previous_releases")
    @classmethod
    def no_duplicate_dates(cls, value: list[HistoryEntry]) -> list[HistoryEntry]:
        seen: set[str] = set()
        for entry in value:
            if entry.date in seen:
                raise ValueError(f"duplicate history date {entry.date}")
            seen.add(entry.date)
        return value


class ReleaseDocument(BaseModel):
    model_config = ConfigDict(extra="allow")

    dataset: str
    source: SourceInfo
    release: ReleaseInfo = Field(default_factory=ReleaseInfo)
    headline: Headline = Field(default_factory=Headline)
    signal: Signal = Field(default_factory=Signal)
    metrics: dict[str, DocumentMetric] = Field(default_factory=dict)
    comparisons: dict[str, Any] = Field(default_factory=dict)
    expectations: dict[str, Any] = Field(default_factory=dict)
    editorial: Editorial = Field(default_factory=Editorial)
    history: History = Field(default_factory=History)
    methodology_notes: list[str] = Field(default_factory=list)


class LinterResult(BaseModel):
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    counts: dict[str, int] = Field(default_factory=dict)


class AuditReport(BaseModel):
    model_config = ConfigDict(extra="allow")

    run_id: str
    timestamp: str
    dataset: str
    reference_period: Optional[str] = None
    candidate_path: str
    linter: LinterResult = Field(default_factory=LinterResult)
    blocked_conditions: list[str] = Field(default_factory=list)
    numeric_check: dict[str, Any] = Field(default_factory=dict)
    final_status: Literal["PASS", "FAIL"]
    fail_reason: Optional[str] = None
