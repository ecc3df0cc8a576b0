# tests/unit/test_bootstrap.py

from __future__ import annotations
import sys
from pathlib import Path
import pytest

# Ensure "src" is importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from legalease.bootstrap import build_app, build_policy
from legalease.config_loader import ConfigError
from legalease.providers.echo import EchoTransport
from legalease.providers.gemini import GeminiTransport
from legalease.resilience.orchestrator import CompletionOrchestrator
from legalease.services.assistant import LegalAssistant

CONFIG = """
provider:
  name: {provider}
providers:
  echo:
    latency: 0.0
  gemini:
    timeout: 5
orchestrator:
  models: [m-lite, m-full]
  max_retries: 2
  base_delay_ms: 0
  deadline_s: 30
credentials:
  prefix: AIza
  min_length: 35
documents:
  max_chars: 1000
secrets:
  method: env
  mapping:
    gemini: {{ api_key: GEMINI_API_KEY }}
logging:
  level: WARNING
"""


def _write(tmp_path: Path, provider: str = "echo") -> Path:
    cfg_dir = tmp_path / "config"
    cfg_dir.mkdir(parents=True, exist_ok=True)
    cfg = cfg_dir / "default.yaml"
    cfg.write_text(CONFIG.format(provider=provider), encoding="utf-8")
    return cfg


def test_build_app_echo(tmp_path: Path):
    ctx = build_app(_write(tmp_path))

    assert isinstance(ctx["transport"], EchoTransport)
    assert isinstance(ctx["orchestrator"], CompletionOrchestrator)
    assert isinstance(ctx["assistant"], LegalAssistant)
    policy = ctx["orchestrator"].policy
    assert policy.models == ("m-lite", "m-full")
    assert policy.max_retries == 2
    assert policy.deadline_s == 30.0
    assert ctx["assistant"].max_document_chars == 1000


def test_build_app_provider_override(tmp_path: Path):
    ctx = build_app(_write(tmp_path, provider="echo"), provider="gemini")
    try:
        assert isinstance(ctx["transport"], GeminiTransport)
        assert ctx["transport"].timeout == 5.0
    finally:
        ctx["transport"].close()


def test_build_app_rejects_unknown_override(tmp_path: Path):
    with pytest.raises(ConfigError):
        build_app(_write(tmp_path), provider="nope")


def test_echo_roundtrip_with_env_key(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "AIza" + "F" * 35)
    ctx = build_app(_write(tmp_path))
    reply = ctx["assistant"].ask("What is probate?")
    assert reply.response.startswith("Lorem ipsum")
    assert reply.model == "m-lite"


def test_build_policy_without_deadline():
    cfg = {"orchestrator": {"models": ["a"], "max_retries": 1, "base_delay_ms": 5}}
    policy = build_policy(cfg)
    assert policy.deadline_s is None
    assert policy.max_calls == 1
