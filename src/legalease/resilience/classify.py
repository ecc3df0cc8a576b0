# src/legalease/resilience/classify.py
from __future__ import annotations
import json
import math
import re
from typing import Any, Dict, Optional

from legalease.core.outcomes import AttemptKind, AttemptOutcome, HttpReply

RETRY_INFO_TYPE = "type.googleapis.com/google.rpc.RetryInfo"
QUOTA_FAILURE_TYPE = "type.googleapis.com/google.rpc.QuotaFailure"

_DELAY_RX = re.compile(r"(\d+(?:\.\d+)?)s")


def parse_json(text: str) -> Optional[Any]:
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None


def _details(error_body: Optional[Dict[str, Any]]) -> list:
    if not isinstance(error_body, dict):
        return []
    err = error_body.get("error")
    if not isinstance(err, dict):
        return []
    details = err.get("details")
    return [d for d in details if isinstance(d, dict)] if isinstance(details, list) else []


def _find_detail(error_body: Optional[Dict[str, Any]], type_url: str) -> Optional[Dict[str, Any]]:
    return next((d for d in _details(error_body) if d.get("@type") == type_url), None)


def parse_retry_delay_ms(error_body: Optional[Dict[str, Any]]) -> Optional[int]:
    """
    Read the RetryInfo hint, e.g. {"retryDelay": "1.5s"} -> 1500.
    Returns None when the body has no usable hint.
    """
    info = _find_detail(error_body, RETRY_INFO_TYPE)
    if not info:
        return None
    raw = info.get("retryDelay")
    if not isinstance(raw, str):
        return None
    m = _DELAY_RX.search(raw)
    if not m:
        return None
    return math.ceil(float(m.group(1)) * 1000)


def is_free_tier_quota(error_body: Optional[Dict[str, Any]]) -> bool:
    info = _find_detail(error_body, QUOTA_FAILURE_TYPE)
    if not info:
        return False
    violations = info.get("violations") or []
    return any(
        isinstance(v, dict) and "FreeTier" in str(v.get("quotaId", ""))
        for v in violations
    )


def extract_text(body: Any) -> Optional[str]:
    """candidates[0].content.parts[0].text, or None when any hop is missing."""
    try:
        text = body["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) and text else None


def classify_reply(model: str, reply: HttpReply, *, fallback_text: str = "") -> AttemptOutcome:
    """
    Map one HTTP reply onto an AttemptOutcome.
    - 2xx with JSON: SUCCESS (fallback_text when no generated text)
    - 2xx without JSON: TRANSIENT (malformed)
    - 429: RATE_LIMITED, carrying the RetryInfo hint when present
    - 401/403: AUTH_FAILURE; 404: MODEL_UNAVAILABLE; anything else: TRANSIENT
    """
    s = int(reply.status)
    body = parse_json(reply.text)

    if 200 <= s < 300:
        if not isinstance(body, dict):
            return AttemptOutcome(AttemptKind.TRANSIENT, model, status=s, error="Malformed success body")
        text = extract_text(body)
        return AttemptOutcome(AttemptKind.SUCCESS, model, text=text if text is not None else fallback_text, status=s)

    error_body = body if isinstance(body, dict) else None
    error = reply.text[:500] if reply.text else f"HTTP {s}"

    if s == 429:
        return AttemptOutcome(
            AttemptKind.RATE_LIMITED, model,
            retry_after_ms=parse_retry_delay_ms(error_body),
            status=s, error_body=error_body, error=error,
        )
    if s in (401, 403):
        return AttemptOutcome(AttemptKind.AUTH_FAILURE, model, status=s, error_body=error_body, error=error)
    if s == 404:
        return AttemptOutcome(AttemptKind.MODEL_UNAVAILABLE, model, status=s, error_body=error_body, error=error)
    return AttemptOutcome(AttemptKind.TRANSIENT, model, status=s, error_body=error_body, error=error)


def classify_exception(model: str, exc: Exception) -> AttemptOutcome:
    return AttemptOutcome(AttemptKind.NETWORK_ERROR, model, error=str(exc) or type(exc).__name__)
