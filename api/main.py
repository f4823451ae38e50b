from __future__ import annotations

import os
from pathlib import Path

from fastapi import FastAPI, HTTPException

from datasets import DATASET_REGISTRY
from errors import FormatError, SnapshotLoadError
from gate import latest_release_run
from gate_policy import METHOD_VERSION, gate_policy_payload
from models import AuditReport, NormalizedSnapshot, ReleaseDocument
from periods import format_period, parse
from storage import DataLayout, load_model


def create_app(data_dir: Path | str | None = None) -> FastAPI:
    root = Path(data_dir) if data_dir is not None else Path(os.environ.get("DATA_DIR") or "data")
    app = FastAPI(title="Delta Release API", version=METHOD_VERSION.lstrip("v"))

    def _layout(dataset: str) -> DataLayout:
        if dataset not in DATASET_REGISTRY:
            raise HTTPException(status_code=404, detail=f"Unknown dataset: {dataset}")
        return DataLayout(root, dataset)

    def _load(path: Path, model, missing_detail: str):
        if not path.exists():
            raise HTTPException(status_code=404, detail=missing_detail)
        try:
            return load_model(path, model)
        except SnapshotLoadError as err:
            raise HTTPException(status_code=500, detail=str(err)) from err

    @app.get("/v1/releases/latest")
    def releases_latest() -> dict:
        row = latest_release_run(root / "releases.db")
        if row is None:
            raise HTTPException(status_code=404, detail="No release runs found.")
        return row

    @app.get("/v1/{dataset}/latest")
    def dataset_latest(dataset: str) -> dict:
        layout = _layout(dataset)
        document = _load(layout.production_path, ReleaseDocument, "No published release available.")
        return document.model_dump(mode="json")

    @app.get("/v1/{dataset}/history")
    def dataset_history(dataset: str) -> dict:
        layout = _layout(dataset)
        document = _load(layout.production_path, ReleaseDocument, "No published release available.")
        return {"items": [entry.model_dump() for entry in document.history.previous_releases]}

    @app.get("/v1/{dataset}/review")
    def dataset_review(dataset: str) -> dict:
        layout = _layout(dataset)
        report = _load(layout.review_path, AuditReport, "No review report available.")
        return report.model_dump(mode="json")

    @app.get("/v1/{dataset}/normalized/{period}")
    def dataset_normalized(dataset: str, period: str) -> dict:
        layout = _layout(dataset)
        try:
            period = format_period(parse(period))
        except FormatError as err:
            raise HTTPException(status_code=400, detail=str(err)) from err
        snapshot = _load(layout.normalized_path(period), NormalizedSnapshot, f"No normalized snapshot for {period}.")
        return snapshot.model_dump(mode="json")

    @app.get("/v1/methodology")
    def methodology() -> dict:
        return {
            "summary": "Monthly BLS series normalized into levels, deltas, averages and 24-month trends, "
            "published only after a deterministic style and signal audit.",
            "method_version": METHOD_VERSION,
            "datasets": {
                name: {
                    "title": spec.title,
                    "series_ids": dict(spec.series_ids),
                    "derived_metrics": {
                        key: {"source_metric": d.source_metric, "lag_months": d.lag_months}
                        for key, d in spec.derived_metrics.items()
                    },
                    "methodology_notes": list(spec.methodology_notes),
                }
                for name, spec in DATASET_REGISTRY.items()
            },
            "gate_policy": gate_policy_payload(),
            "limitations": [
                "Values are as first published and are not revised after promotion.",
                "Deltas compare against the previous published release.",
            ],
        }

    return app


app = create_app()
