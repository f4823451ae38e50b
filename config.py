from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Mapping

from datasets import DatasetSpec, get_dataset

DEFAULT_DATA_DIR = Path("data")
DEFAULT_OPENAI_MODEL = "gpt-4o"
DEFAULT_TIMEOUT_SECONDS = 60


@dataclass(frozen=True)
class PipelineConfig:
    """Process-wide settings, built once in main() and passed to every stage."""

    dataset: DatasetSpec
    data_dir: Path = DEFAULT_DATA_DIR
    bls_api_key: str = ""
    openai_api_key: str = ""
    openai_model: str = DEFAULT_OPENAI_MODEL
    request_timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    today: date | None = None

    @property
    def dataset_name(self) -> str:
        return self.dataset.name

    @property
    def has_auditor(self) -> bool:
        return bool(self.openai_api_key)

    def current_date(self) -> date:
        return self.today or date.today()

    @classmethod
    def from_env(
        cls,
        dataset: str,
        data_dir: Path | str | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> "PipelineConfig":
        env = os.environ if environ is None else environ
        resolved_dir = Path(data_dir) if data_dir is not None else Path(env.get("DATA_DIR") or DEFAULT_DATA_DIR)
        timeout_raw = (env.get("REQUEST_TIMEOUT_SECONDS") or "").strip()
        timeout = int(timeout_raw) if timeout_raw.isdigit() else DEFAULT_TIMEOUT_SECONDS
        return cls(
            dataset=get_dataset(dataset),
            data_dir=resolved_dir,
            bls_api_key=(env.get("BLS_API_KEY") or "").strip(),
            openai_api_key=(env.get("OPENAI_API_KEY") or "").strip(),
            openai_model=(env.get("OPENAI_MODEL") or DEFAULT_OPENAI_MODEL).strip(),
            request_timeout_seconds=timeout,
        )
