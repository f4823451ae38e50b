"""Chat-completions client used for the numeric audit and optional drafting.

Both calls ask for a JSON object response and validate its shape. Anything
that does not fit (transport failure, non-JSON content, wrong keys) raises
AuditorError; callers decide whether that fails the gate or aborts the stage.
"""
from __future__ import annotations

import json
import logging

from errors import AuditorError
from gate_policy import GATE_POLICY

from .common import DEFAULT_TIMEOUT_SECONDS, FetchError, post_json

logger = logging.getLogger(__name__)

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"
AUDIT_STATUSES = ("PASS", "FAIL")

AUDIT_SYSTEM_PROMPT = """You are the editorial quality reviewer for a statistical release page.

Audit the candidate JSON for publication readiness. Return FAIL if any of these hold:

1. Signal conflict: headline or editorial contradicts the locked signal.
2. Numeric mismatch: every number in the text must match either
   a LEVEL from metrics[*].value when the text uses one of: {level_verbs}
   or a DELTA from comparisons.prior_release[*].delta when the text uses one of: {delta_verbs}.
   Using a level where a delta is required, or the reverse, is a FAIL.
3. Non-neutral tone: advice, predictions, speculation or sensationalism.

Return ONLY a JSON object:
{{"status": "PASS" or "FAIL", "reason": "brief explanation", "flags": ["SPECIFIC_ISSUES"]}}"""

DRAFT_SYSTEM_PROMPT = """You write neutral one-sentence statements about official statistics.

Use only the numbers provided. No interpretation, no predictions, no semicolons,
no exclamation points, no em-dashes.

Return ONLY a JSON object:
{"headline": {"title": str, "summary": str, "context": str},
 "editorial": {"what_changed": str, "what_didnt": str, "why_it_matters": "", "revision_note": "", "editor_note": ""}}"""

HEADLINE_KEYS = ("title", "summary", "context")
EDITORIAL_KEYS = ("what_changed", "what_didnt", "why_it_matters", "revision_note", "editor_note")


class OpenAIClient:
    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        timeout: int = DEFAULT_TIMEOUT_SECONDS,
        url: str = OPENAI_CHAT_URL,
    ) -> None:
        if not api_key:
            raise AuditorError("OpenAIClient requires an API key")
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.url = url

    def _complete_json(self, system_prompt: str, user_prompt: str, temperature: float) -> dict:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "response_format": {"type": "json_object"},
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            response = post_json(self.url, payload, timeout=self.timeout, headers=headers)
        except FetchError as exc:
            raise AuditorError(str(exc)) from exc
        try:
            content = response["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise AuditorError(f"Unexpected completion payload: {exc}") from exc
        try:
            parsed = json.loads(content)
        except (TypeError, json.JSONDecodeError) as exc:
            raise AuditorError(f"Completion content is not JSON: {exc}") from exc
        if not isinstance(parsed, dict):
            raise AuditorError("Completion content is not a JSON object")
        return parsed

    def audit(self, document: dict) -> dict:
        numeric = GATE_POLICY["numeric_audit"]
        system_prompt = AUDIT_SYSTEM_PROMPT.format(
            level_verbs=", ".join(f'"{verb}"' for verb in numeric["level_verbs"]),
            delta_verbs=", ".join(f'"{verb}"' for verb in numeric["delta_verbs"]),
        )
        signal = document.get("signal") or {}
        if signal.get("state") and signal.get("pressure"):
            signal_context = f"Signal: State={signal['state']}, Pressure={signal['pressure']}"
        else:
            signal_context = "Signal: Not set"
        headline = document.get("headline") or {}
        user_prompt = "\n\n".join(
            [
                signal_context,
                f"Headline: {headline.get('title')}\nSummary: {headline.get('summary')}\nContext: {headline.get('context')}",
                "Metrics (levels):\n" + json.dumps(document.get("metrics"), indent=2),
                "Comparisons (deltas):\n" + json.dumps(document.get("comparisons", {}).get("prior_release"), indent=2),
                "Editorial:\n" + json.dumps(document.get("editorial"), indent=2),
                "Audit this content.",
            ]
        )
        parsed = self._complete_json(system_prompt, user_prompt, temperature=0.1)
        status = parsed.get("status")
        if status not in AUDIT_STATUSES:
            raise AuditorError(f"Invalid audit status: {status!r}")
        flags = parsed.get("flags") or []
        if not isinstance(flags, list):
            raise AuditorError("Audit flags must be a list")
        return {
            "status": status,
            "reason": str(parsed.get("reason") or ""),
            "flags": [str(flag) for flag in flags],
        }

    def draft(self, context: dict) -> dict:
        user_prompt = "Write the release text for this data:\n" + json.dumps(context, indent=2)
        parsed = self._complete_json(DRAFT_SYSTEM_PROMPT, user_prompt, temperature=0.2)
        headline = parsed.get("headline")
        editorial = parsed.get("editorial")
        if not isinstance(headline, dict) or not isinstance(editorial, dict):
            raise AuditorError("Draft response must contain headline and editorial objects")
        for section, keys in (("headline", HEADLINE_KEYS), ("editorial", EDITORIAL_KEYS)):
            block = parsed[section]
            for key in keys:
                if not isinstance(block.get(key, ""), str):
                    raise AuditorError(f"Draft field {section}.{key} must be a string")
        logger.info("Received AI draft from %s", self.model)
        return {
            "headline": {key: headline.get(key, "") for key in HEADLINE_KEYS},
            "editorial": {key: editorial.get(key, "") for key in EDITORIAL_KEYS},
        }
