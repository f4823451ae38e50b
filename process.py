from __future__ import annotations

import argparse
import logging
from typing import Callable

from assembler import Drafter, build_candidate
from config import PipelineConfig
from datasets import DATASET_REGISTRY, DatasetSpec
from errors import ConfigurationError, DataIntegrityError, PipelineError, SnapshotLoadError
from gate import review_candidate
from metrics import compute_derived_metrics, extract_metrics
from models import NormalizedSnapshot, ReleaseDocument
from periods import month_label, parse
from series import build_lookups, find_latest_period, monthly_only
from sources import FetchError, OpenAIClient, fetch_series
from sources.common import utc_now_iso
from storage import (
    DataLayout,
    detect_latest_period,
    load_model,
    read_json,
    validate_model,
    write_json_atomic,
    write_json_once,
)
from trends import (
    build_trends,
    compute_deltas,
    compute_twelve_month_averages,
    enforce_trend_guardrail,
    load_trend_history,
    prior_release_values,
)

logger = logging.getLogger(__name__)

FETCH_YEARS = 3
LOG_FORMAT = "[%(name)s] %(levelname)s %(message)s"

SeriesFetcher = Callable[..., list]


def load_production(layout: DataLayout) -> dict:
    """Raw production document, checked against ReleaseDocument.

    The raw dict is returned so locked fields are copied byte-for-byte.
    """
    payload = read_json(layout.production_path)
    validate_model(payload, ReleaseDocument, layout.production_path)
    return payload


def locked_series_ids(production: dict) -> dict[str, str]:
    series_ids = (production.get("source") or {}).get("series_ids") or {}
    if not series_ids:
        raise ConfigurationError("Production document has no source.series_ids")
    return dict(series_ids)


def build_normalized_snapshot(
    spec: DatasetSpec,
    series_ids: dict[str, str],
    lookups: dict[str, dict[str, float]],
    period: str,
    layout: DataLayout,
    production: dict,
    fetched_at: str,
) -> dict:
    """Compute metrics, trends, deltas and averages for one period.

    Raises InsufficientHistoryError before anything is written when a trend
    window is too sparse to publish.
    """
    metrics = extract_metrics(spec, series_ids, lookups, period)
    metrics.update(compute_derived_metrics(spec, series_ids, lookups, period))
    if not metrics:
        raise DataIntegrityError(f"No metrics could be computed for {period}")

    history = load_trend_history(layout, period)
    trends = build_trends(history, metrics)
    enforce_trend_guardrail(trends)

    deltas = compute_deltas(metrics, prior_release_values(production))
    snapshot = {
        "reference_period": period,
        "fetched_at": fetched_at,
        "metrics": metrics,
        "deltas": deltas,
        "comparisons": {
            "prior_release": deltas,
            "twelve_month_average": compute_twelve_month_averages(trends, metrics),
            "trend": trends,
        },
    }
    return validate_model(snapshot, NormalizedSnapshot, f"normalized {period}").model_dump(mode="json")


def run_ingest(config: PipelineConfig, period: str | None = None, fetch: SeriesFetcher = fetch_series) -> dict:
    layout = DataLayout(config.data_dir, config.dataset_name)
    production = load_production(layout)
    series_ids = locked_series_ids(production)

    end_year = config.current_date().year
    series_data = fetch(
        list(series_ids.values()),
        end_year - (FETCH_YEARS - 1),
        end_year,
        api_key=config.bls_api_key,
        timeout=config.request_timeout_seconds,
    )
    lookups = build_lookups(series_data, series_ids.values())
    latest = find_latest_period(lookups)
    if period is None:
        period = latest
    else:
        parse(period)

    normalized_path = layout.normalized_path(period)
    if normalized_path.exists():
        logger.info("Normalized snapshot for %s already exists, nothing to do", period)
        return {"status": "skipped", "reference_period": period, "path": str(normalized_path)}

    fetched_at = utc_now_iso()
    snapshot = build_normalized_snapshot(config.dataset, series_ids, lookups, period, layout, production, fetched_at)

    raw_payload = {
        "dataset": config.dataset_name,
        "reference_period": period,
        "fetched_at": fetched_at,
        "series": monthly_only(series_data),
    }
    write_json_once(layout.raw_path(period), raw_payload)
    write_json_once(normalized_path, snapshot)
    logger.info("Wrote normalized snapshot %s", normalized_path)
    return {"status": "ingested", "reference_period": period, "path": str(normalized_path)}


def ai_drafter(client: OpenAIClient, spec: DatasetSpec) -> Drafter:
    def draft(normalized: dict, production: dict) -> dict:
        context = {
            "dataset": spec.name,
            "reference_period": normalized["reference_period"],
            "label": month_label(parse(normalized["reference_period"])),
            "levels": {k: m["display_value"] for k, m in normalized["metrics"].items()},
            "deltas": {k: m["display_value"] for k, m in normalized.get("deltas", {}).items()},
            "signal": production.get("signal"),
        }
        return client.draft(context)

    return draft


def build_auditor(config: PipelineConfig) -> OpenAIClient | None:
    if not config.has_auditor:
        return None
    return OpenAIClient(
        config.openai_api_key,
        model=config.openai_model,
        timeout=config.request_timeout_seconds,
    )


def run_draft(config: PipelineConfig, period: str | None = None, drafter: Drafter | None = None) -> dict:
    layout = DataLayout(config.data_dir, config.dataset_name)
    if period is None:
        period = detect_latest_period(layout)
        if period is None:
            raise SnapshotLoadError(f"No normalized snapshots found under {layout.normalized_dir}. Run ingest first.")
        logger.info("Auto-detected period %s", period)
    else:
        parse(period)

    production = load_production(layout)
    normalized = load_model(layout.normalized_path(period), NormalizedSnapshot).model_dump(mode="json")
    candidate = build_candidate(config.dataset, normalized, production, utc_now_iso(), drafter=drafter)
    validate_model(candidate, ReleaseDocument, layout.candidate_path)
    write_json_atomic(layout.candidate_path, candidate)
    logger.info("Wrote candidate %s", layout.candidate_path)
    return {"status": "drafted", "reference_period": period, "path": str(layout.candidate_path)}


def run_review(config: PipelineConfig, auditor: OpenAIClient | None = None) -> dict:
    layout = DataLayout(config.data_dir, config.dataset_name)
    candidate = read_json(layout.candidate_path)
    if not isinstance(candidate, dict):
        raise SnapshotLoadError(f"Candidate {layout.candidate_path} is not a JSON object")
    production = load_production(layout)
    return review_candidate(layout, candidate, production, auditor, utc_now_iso())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Ingest, draft and review statistical releases. Run one invocation per dataset at a time.",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level (default INFO)")
    commands = parser.add_subparsers(dest="command", required=True)
    for name, help_text in (
        ("ingest", "Fetch series and write the normalized snapshot"),
        ("draft", "Assemble the candidate release document"),
        ("review", "Audit the candidate and promote it on PASS"),
    ):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument("--dataset", required=True, choices=sorted(DATASET_REGISTRY))
        sub.add_argument("--data-dir", default=None, help="Data directory (default $DATA_DIR or ./data)")
        if name in {"ingest", "draft"}:
            sub.add_argument("--period", default=None, help="Reference period YYYY-MM")
        if name == "draft":
            sub.add_argument("--ai-draft", action="store_true", help="Draft text with the AI client")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format=LOG_FORMAT)

    try:
        config = PipelineConfig.from_env(args.dataset, data_dir=args.data_dir)
        if args.command == "ingest":
            result = run_ingest(config, period=args.period)
        elif args.command == "draft":
            drafter = None
            if args.ai_draft:
                client = build_auditor(config)
                if client is None:
                    raise ConfigurationError("--ai-draft requires OPENAI_API_KEY")
                drafter = ai_drafter(client, config.dataset)
            result = run_draft(config, period=args.period, drafter=drafter)
        else:
            report = run_review(config, auditor=build_auditor(config))
            print(f"Run status: {report['final_status']}")
            print(f"Summary: dataset={report['dataset']} reference_period={report['reference_period']}")
            for warning in report["linter"]["warnings"]:
                print(f"Warning: {warning}")
            flags = report["numeric_check"].get("flags") or []
            if flags:
                print(f"Audit flags: {', '.join(flags)}")
            if report["blocked_conditions"]:
                print("Blocked conditions:")
                for reason in report["blocked_conditions"]:
                    print(f"- {reason}")
                return 1
            return 0
    except (PipelineError, FetchError) as err:
        logger.error("%s failed: %s", args.command, err)
        print("Run status: error")
        print(f"- {err}")
        return 1

    print(f"Run status: {result['status']}")
    print(f"Summary: dataset={config.dataset_name} reference_period={result['reference_period']} path={result['path']}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
