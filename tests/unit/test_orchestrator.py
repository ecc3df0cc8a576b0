# tests/unit/test_orchestrator.py

from __future__ import annotations
import json
import sys
from pathlib import Path
import pytest

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from legalease.core.errors import ProviderTransientError
from legalease.core.outcomes import FailureKind, HttpReply, Success, Failure
from legalease.prompts.builder import build_chat_request
from legalease.resilience.classify import QUOTA_FAILURE_TYPE, RETRY_INFO_TYPE
from legalease.resilience.orchestrator import CompletionOrchestrator, OrchestrationPolicy

KEY = "AIza" + "A" * 35

# -------- helpers --------

def reply(status, body=None):
    text = json.dumps(body) if isinstance(body, dict) else (body or "")
    return HttpReply(status=status, text=text)

def ok(text):
    return reply(200, {"candidates": [{"content": {"parts": [{"text": text}]}}]})

def rate_limited(delay=None, free_tier=False):
    details = []
    if delay:
        details.append({"@type": RETRY_INFO_TYPE, "retryDelay": delay})
    if free_tier:
        details.append({
            "@type": QUOTA_FAILURE_TYPE,
            "violations": [{"quotaId": "GenerateRequestsPerDayPerProjectPerModel-FreeTier"}],
        })
    return reply(429, {"error": {"code": 429, "status": "RESOURCE_EXHAUSTED", "details": details}})

class ScriptedTransport:
    """Pops replies per model; falls back to `default` once a script runs dry."""
    name = "scripted"

    def __init__(self, script=None, default=None):
        self.script = {m: list(items) for m, items in (script or {}).items()}
        self.default = default
        self.calls = []
        self.bodies = []

    def generate(self, model, api_key, body):
        self.calls.append(model)
        self.bodies.append(body)
        queue = self.script.get(model)
        item = queue.pop(0) if queue else self.default
        if isinstance(item, BaseException):
            raise item
        return item

def make(transport, models=("m1", "m2", "m3"), max_retries=3, base_delay_ms=2000, **kw):
    sleeps = []
    policy = OrchestrationPolicy(models=tuple(models), max_retries=max_retries, base_delay_ms=base_delay_ms, **kw)
    return CompletionOrchestrator(transport, policy, sleep=sleeps.append), sleeps

REQ = build_chat_request("What is a tort?")

# -------- tests --------

def test_first_call_success():
    t = ScriptedTransport({"m1": [ok("hi")]})
    orch, sleeps = make(t)
    result = orch.attempt_completion(REQ, KEY)
    assert result == Success(text="hi", model_used="m1", attempt_number=1)
    assert sleeps == []
    assert t.bodies[0] == REQ.to_payload()

@pytest.mark.parametrize("key", [None, "", "   ", "sk-not-a-gemini-key-0123456789012345", "AIza-too-short"])
def test_malformed_credential_makes_no_calls(key):
    t = ScriptedTransport(default=ok("never"))
    orch, sleeps = make(t)
    result = orch.attempt_completion(REQ, key)
    assert isinstance(result, Failure)
    assert result.kind is FailureKind.INVALID_CREDENTIAL
    assert t.calls == []
    assert sleeps == []

@pytest.mark.parametrize("status", [401, 403])
def test_auth_failure_is_terminal(status):
    t = ScriptedTransport(default=reply(status, {"error": {"code": status}}))
    orch, sleeps = make(t)
    result = orch.attempt_completion(REQ, KEY)
    assert result.kind is FailureKind.AUTH_FAILED
    assert t.calls == ["m1"]
    assert sleeps == []

def test_rate_limit_hint_is_used_verbatim():
    t = ScriptedTransport({"m1": [rate_limited("1.5s"), ok("done")]})
    orch, sleeps = make(t)
    result = orch.attempt_completion(REQ, KEY)
    assert sleeps == [1.5]
    assert result == Success(text="done", model_used="m1", attempt_number=2)

def test_rate_limit_without_hint_grows_linearly():
    t = ScriptedTransport({"m1": [rate_limited(), rate_limited(), ok("done")]})
    orch, sleeps = make(t)
    result = orch.attempt_completion(REQ, KEY)
    # retry index 0 -> 2000ms, retry index 1 -> 4000ms
    assert sleeps == [2.0, 4.0]
    assert result.attempt_number == 3

def test_not_found_falls_through_without_delay():
    t = ScriptedTransport({"m1": [reply(404)], "m2": [ok("OK")]})
    orch, sleeps = make(t)
    result = orch.attempt_completion(REQ, KEY)
    assert result == Success(text="OK", model_used="m2", attempt_number=1)
    assert t.calls == ["m1", "m2"]
    assert sleeps == []

def test_all_rate_limited_reports_quota_guidance():
    t = ScriptedTransport(default=rate_limited())
    orch, sleeps = make(t)
    result = orch.attempt_completion(REQ, KEY)
    assert result.kind is FailureKind.RATE_LIMITED
    assert result.quota_exceeded is True
    assert any("quota reset" in s for s in result.suggestions)
    assert len(t.calls) == 9
    assert sleeps == [2.0, 4.0] * 3

def test_free_tier_quota_message():
    t = ScriptedTransport(default=rate_limited(free_tier=True))
    orch, _ = make(t, models=("m1",))
    result = orch.attempt_completion(REQ, KEY)
    assert "free tier" in result.message

def test_server_errors_back_off_exponentially():
    t = ScriptedTransport(default=reply(500, "Internal error"))
    orch, sleeps = make(t, models=("m1",), max_retries=4, base_delay_ms=100)
    result = orch.attempt_completion(REQ, KEY)
    assert sleeps == [0.1, 0.2, 0.4]
    assert result.kind is FailureKind.TRANSIENT
    assert result.status == 500

def test_network_errors_are_retried_like_server_errors():
    t = ScriptedTransport({"m1": [ProviderTransientError("connect timeout"), ok("back")]})
    orch, sleeps = make(t)
    result = orch.attempt_completion(REQ, KEY)
    assert sleeps == [2.0]
    assert result == Success(text="back", model_used="m1", attempt_number=2)

def test_only_network_errors_reports_network_error():
    t = ScriptedTransport(default=ConnectionError("unreachable"))
    orch, _ = make(t)
    result = orch.attempt_completion(REQ, KEY)
    assert result.kind is FailureKind.NETWORK_ERROR
    assert len(t.calls) == 9

@pytest.mark.parametrize("n,r", [(1, 1), (2, 3), (3, 2), (8, 3)])
def test_call_count_bounded_by_models_times_retries(n, r):
    t = ScriptedTransport(default=reply(503))
    orch, _ = make(t, models=[f"m{i}" for i in range(n)], max_retries=r, base_delay_ms=0)
    orch.attempt_completion(REQ, KEY)
    assert len(t.calls) == n * r
    assert len(t.calls) <= orch.policy.max_calls

def test_precedence_prefers_rate_limit_over_later_errors():
    t = ScriptedTransport({
        "m1": [reply(404)],
        "m2": [rate_limited()] * 3,
        "m3": [reply(500)] * 3,
    })
    orch, _ = make(t, base_delay_ms=0)
    result = orch.attempt_completion(REQ, KEY)
    assert result.kind is FailureKind.RATE_LIMITED

def test_precedence_prefers_unavailable_over_transient():
    t = ScriptedTransport({"m1": [reply(500)] * 3, "m2": [reply(404)]})
    orch, _ = make(t, models=("m1", "m2"), base_delay_ms=0)
    result = orch.attempt_completion(REQ, KEY)
    assert result.kind is FailureKind.UNAVAILABLE
    assert "regional" in result.message

def test_malformed_success_body_is_transient():
    t = ScriptedTransport({"m1": [reply(200, "<html>oops</html>"), ok("fine")]})
    orch, sleeps = make(t)
    result = orch.attempt_completion(REQ, KEY)
    assert sleeps == [2.0]
    assert result.attempt_number == 2

def test_success_without_text_uses_fallback():
    t = ScriptedTransport({"m1": [reply(200, {"candidates": []})]})
    orch, _ = make(t)
    result = orch.attempt_completion(REQ, KEY)
    assert result.text == REQ.fallback_text

def test_deadline_stops_before_long_backoff():
    t = ScriptedTransport(default=rate_limited())
    sleeps = []
    policy = OrchestrationPolicy(models=("m1", "m2"), deadline_s=3.0)
    orch = CompletionOrchestrator(t, policy, sleep=sleeps.append, clock=lambda: 0.0)
    result = orch.attempt_completion(REQ, KEY)
    # 2s fits inside the deadline, the following 4s does not
    assert sleeps == [2.0]
    assert t.calls == ["m1", "m1"]
    assert result.kind is FailureKind.RATE_LIMITED

class StepClock:
    """Fake monotonic clock advanced by the transport on every call."""

    def __init__(self, step):
        self.now = 0.0
        self.step = step

    def __call__(self):
        return self.now

def test_deadline_checked_before_every_call():
    clock = StepClock(step=10.0)
    t = ScriptedTransport(default=reply(404, {"error": {"code": 404}}))
    generate = t.generate

    def slow_generate(model, api_key, body):
        clock.now += clock.step
        return generate(model, api_key, body)

    t.generate = slow_generate
    models = tuple(f"m{i}" for i in range(8))
    sleeps = []
    policy = OrchestrationPolicy(models=models, deadline_s=5.0)
    orch = CompletionOrchestrator(t, policy, sleep=sleeps.append, clock=clock)
    result = orch.attempt_completion(REQ, KEY)
    # The first call already overran the deadline; no further model is tried
    assert t.calls == ["m0"]
    assert sleeps == []
    assert result.kind is FailureKind.UNAVAILABLE

def test_deadline_not_reached_tries_every_model():
    clock = StepClock(step=1.0)
    t = ScriptedTransport(default=reply(404, {"error": {"code": 404}}))
    generate = t.generate

    def slow_generate(model, api_key, body):
        clock.now += clock.step
        return generate(model, api_key, body)

    t.generate = slow_generate
    policy = OrchestrationPolicy(models=("m1", "m2", "m3"), deadline_s=30.0)
    orch = CompletionOrchestrator(t, policy, sleep=lambda s: None, clock=clock)
    orch.attempt_completion(REQ, KEY)
    assert t.calls == ["m1", "m2", "m3"]

def test_invalid_credential_message_carries_reason():
    t = ScriptedTransport(default=ok("never"))
    orch, _ = make(t)
    result = orch.attempt_completion(REQ, "sk-not-a-gemini-key-0123456789012345")
    assert result.kind is FailureKind.INVALID_CREDENTIAL
    assert "expected prefix 'AIza'" in result.message
    assert "Invalid API key" not in result.message

def test_keyboard_interrupt_passthrough():
    t = ScriptedTransport(default=KeyboardInterrupt())
    orch, _ = make(t)
    with pytest.raises(KeyboardInterrupt):
        orch.attempt_completion(REQ, KEY)

def test_policy_rejects_empty_models():
    with pytest.raises(ValueError):
        OrchestrationPolicy(models=())
