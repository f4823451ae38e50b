from __future__ import annotations


class PipelineError(Exception):
    """Base class for errors that abort a pipeline stage."""


class FormatError(PipelineError, ValueError):
    pass


class ConfigurationError(PipelineError):
    pass


class DataIntegrityError(PipelineError):
    pass


class SeriesMisalignmentError(PipelineError):
    def __init__(self, latest_by_series: dict[str, str]) -> None:
        self.latest_by_series = dict(latest_by_series)
        detail = ", ".join(f"{sid}={period}" for sid, period in sorted(self.latest_by_series.items()))
        super().__init__(f"Series misalignment detected: {detail}")


class InsufficientHistoryError(PipelineError):
    def __init__(self, metric_key: str, null_count: int, max_nulls: int) -> None:
        self.metric_key = metric_key
        self.null_count = null_count
        self.max_nulls = max_nulls
        super().__init__(
            f'Trend for "{metric_key}" has {null_count} null values (max allowed: {max_nulls}). '
            "Insufficient historical data to publish safely."
        )


class SnapshotLoadError(PipelineError):
    pass


class AuditorError(PipelineError):
    pass
