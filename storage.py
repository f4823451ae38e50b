"""Persisted state layout and JSON helpers.

One tree per dataset under the data directory:

    raw/{dataset}/{YYYY-MM}.json                        write-once
    normalized/{dataset}/{YYYY-MM}.normalized.json      write-once
    latest.{dataset}.json                               production document
    latest.{dataset}.candidate.json                     candidate document
    latest.{dataset}.review.json                        audit report
    releases.db                                         review run ledger

Only one pipeline run per dataset may be in flight; nothing here locks.
"""
from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from errors import SnapshotLoadError

logger = logging.getLogger(__name__)

NORMALIZED_SUFFIX = ".normalized.json"
_PERIOD_NAME_RE = re.compile(r"^\d{4}-\d{2}$")

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(frozen=True)
class DataLayout:
    data_dir: Path
    dataset: str

    @property
    def raw_dir(self) -> Path:
        return self.data_dir / "raw" / self.dataset

    @property
    def normalized_dir(self) -> Path:
        return self.data_dir / "normalized" / self.dataset

    @property
    def production_path(self) -> Path:
        return self.data_dir / f"latest.{self.dataset}.json"

    @property
    def candidate_path(self) -> Path:
        return self.data_dir / f"latest.{self.dataset}.candidate.json"

    @property
    def review_path(self) -> Path:
        return self.data_dir / f"latest.{self.dataset}.review.json"

    @property
    def release_db_path(self) -> Path:
        return self.data_dir / "releases.db"

    def raw_path(self, period: str) -> Path:
        return self.raw_dir / f"{period}.json"

    def normalized_path(self, period: str) -> Path:
        return self.normalized_dir / f"{period}{NORMALIZED_SUFFIX}"


def read_json(path: Path) -> Any:
    try:
        text = path.read_text()
    except FileNotFoundError as exc:
        raise SnapshotLoadError(f"Required file not found: {path}") from exc
    except OSError as exc:
        raise SnapshotLoadError(f"Failed to read {path}: {exc}") from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise SnapshotLoadError(f"Malformed JSON in {path}: {exc}") from exc


def read_json_if_exists(path: Path) -> Any | None:
    if not path.exists():
        return None
    return read_json(path)


def validate_model(payload: Any, model: type[ModelT], origin: Path | str) -> ModelT:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise SnapshotLoadError(f"{origin} failed {model.__name__} validation: {exc}") from exc


def load_model(path: Path, model: type[ModelT]) -> ModelT:
    return validate_model(read_json(path), model, path)


def write_json_atomic(path: Path, payload: Any) -> None:
    """Write to a sibling temp file, then swap it into place with os.replace."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w") as handle:
            json.dump(payload, handle, indent=2)
            handle.write("\n")
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def write_json_once(path: Path, payload: Any) -> bool:
    if path.exists():
        logger.info("Skipping existing write-once file %s", path)
        return False
    write_json_atomic(path, payload)
    return True


def list_normalized_periods(layout: DataLayout) -> list[str]:
    if not layout.normalized_dir.is_dir():
        return []
    periods = []
    for child in layout.normalized_dir.iterdir():
        if not child.name.endswith(NORMALIZED_SUFFIX):
            continue
        period = child.name[: -len(NORMALIZED_SUFFIX)]
        if _PERIOD_NAME_RE.match(period):
            periods.append(period)
    return sorted(periods)


def detect_latest_period(layout: DataLayout) -> str | None:
    periods = list_normalized_periods(layout)
    return periods[-1] if periods else None
