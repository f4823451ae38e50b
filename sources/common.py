from __future__ import annotations

import json
import urllib.request
from datetime import datetime, timezone
from typing import Any

DEFAULT_TIMEOUT_SECONDS = 60
USER_AGENT = "delta-pipeline/1.0 (+https://www.bls.gov/developers/)"


class FetchError(Exception):
    pass


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def _open(req: urllib.request.Request, url: str, timeout: int) -> str:
    try:
        with urllib.request.urlopen(req, timeout=timeout) as response:
            return response.read().decode("utf-8", errors="ignore")
    except Exception as err:
        raise FetchError(f"Failed to fetch URL: {url}: {err}") from err


def _decode(text: str, url: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise FetchError(f"Invalid JSON from {url}: {exc}") from exc


def post_json(
    url: str,
    payload: Any,
    timeout: int = DEFAULT_TIMEOUT_SECONDS,
    headers: dict[str, str] | None = None,
) -> Any:
    req = urllib.request.Request(
        url,
        data=json.dumps(payload).encode("utf-8"),
        headers={
            "User-Agent": USER_AGENT,
            "Content-Type": "application/json",
            **(headers or {}),
        },
        method="POST",
    )
    return _decode(_open(req, url, timeout), url)
