from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from assembler import EXPECTATIONS_NOTE
from datasets import DATASET_REGISTRY, DatasetSpec, get_dataset
from models import ReleaseDocument
from storage import DataLayout, validate_model, write_json_atomic
from templates import Pressure, State


def build_seed_document(spec: DatasetSpec, state: str, pressure: str, confidence: str = "low") -> dict:
    metric_keys = list(spec.series_ids) + list(spec.derived_metrics)
    metrics = {}
    for key in metric_keys:
        label, qualifier = spec.metric_labels.get(key, (key.replace("_", " ").title(), None))
        metrics[key] = {
            "label": label,
            "qualifier": qualifier,
            "value": None,
            "unit": spec.unit_for(key),
            "precision": spec.precision_for(key),
        }
    document = {
        "dataset": spec.name,
        "source": {"name": "U.S. Bureau of Labor Statistics", "series_ids": dict(spec.series_ids)},
        "release": {"date": None, "reference_period": None, "next_release": None, "generated_at": None},
        "headline": {"title": spec.title, "summary": "", "context": ""},
        "signal": {"state": State(state).value, "pressure": Pressure(pressure).value, "confidence": confidence},
        "metrics": metrics,
        "comparisons": {},
        "expectations": {"_note": EXPECTATIONS_NOTE, **{key: {"consensus": None} for key in spec.series_ids}},
        "editorial": {},
        "history": {"previous_releases": []},
        "methodology_notes": list(spec.methodology_notes),
    }
    validate_model(document, ReleaseDocument, f"seed {spec.name}")
    return document


def seed_dataset(data_dir: Path, dataset: str, state: str, pressure: str) -> bool:
    layout = DataLayout(data_dir, dataset)
    if layout.production_path.exists():
        return False
    write_json_atomic(layout.production_path, build_seed_document(get_dataset(dataset), state, pressure))
    return True


def main() -> int:
    parser = argparse.ArgumentParser(description="Write an initial production document for a dataset.")
    parser.add_argument("--dataset", required=True, choices=sorted(DATASET_REGISTRY))
    parser.add_argument("--data-dir", default="data")
    parser.add_argument("--state", default=State.STEADY.value, choices=[s.value for s in State])
    parser.add_argument("--pressure", default=Pressure.BALANCED.value, choices=[p.value for p in Pressure])
    args = parser.parse_args()

    data_dir = Path(args.data_dir)
    if seed_dataset(data_dir, args.dataset, args.state, args.pressure):
        print(f"Seeded {DataLayout(data_dir, args.dataset).production_path}")
    else:
        print(f"Production document for {args.dataset} already exists, left unchanged.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
