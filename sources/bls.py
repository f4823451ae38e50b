"""BLS public data API v2 client."""
from __future__ import annotations

import logging
from typing import Iterable

from .common import DEFAULT_TIMEOUT_SECONDS, FetchError, post_json

logger = logging.getLogger(__name__)

BLS_API_URL = "https://api.bls.gov/publicAPI/v2/timeseries/data/"
REQUEST_SUCCEEDED = "REQUEST_SUCCEEDED"


def build_request(series_ids: Iterable[str], start_year: int, end_year: int, api_key: str = "") -> dict:
    payload = {
        "seriesid": list(series_ids),
        "startyear": str(start_year),
        "endyear": str(end_year),
    }
    if api_key:
        payload["registrationkey"] = api_key
    return payload


def fetch_series(
    series_ids: Iterable[str],
    start_year: int,
    end_year: int,
    api_key: str = "",
    timeout: int = DEFAULT_TIMEOUT_SECONDS,
    url: str = BLS_API_URL,
) -> list[dict]:
    """Fetch monthly observations for the given series.

    Returns the upstream `Results.series` list as-is. Any status other than
    REQUEST_SUCCEEDED raises FetchError.
    """
    payload = build_request(series_ids, start_year, end_year, api_key)
    logger.info("Requesting %d BLS series for %s-%s", len(payload["seriesid"]), start_year, end_year)
    response = post_json(url, payload, timeout=timeout)
    if not isinstance(response, dict):
        raise FetchError(f"BLS API returned a non-object payload: {type(response).__name__}")
    status = response.get("status")
    if status != REQUEST_SUCCEEDED:
        raise FetchError(f"BLS API returned status: {status} - {response.get('message')}")
    series = (response.get("Results") or {}).get("series")
    if not isinstance(series, list):
        raise FetchError("BLS API response is missing Results.series")
    return series
