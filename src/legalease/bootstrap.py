from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv

from .config_loader import load_config, ConfigError, PROVIDERS
from .providers.registry import ProviderRegistry
from .resilience.orchestrator import CompletionOrchestrator, OrchestrationPolicy
from .secrets.sources import SecretsResolver
from .secrets.validation import CredentialRule, GEMINI_KEY_MIN_LENGTH, GEMINI_KEY_PREFIX
from .services.assistant import LegalAssistant
from .prompts.builder import DEFAULT_MAX_DOCUMENT_CHARS

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # httpx logs every request URL at INFO, and the URL carries the API key
    logging.getLogger("httpx").setLevel(logging.WARNING)


def build_policy(cfg: Dict[str, Any]) -> OrchestrationPolicy:
    orch = cfg["orchestrator"]
    deadline = orch.get("deadline_s")
    return OrchestrationPolicy(
        models=tuple(orch["models"]),
        max_retries=int(orch["max_retries"]),
        base_delay_ms=int(orch["base_delay_ms"]),
        deadline_s=float(deadline) if deadline is not None else None,
    )


def build_app(config_path: Path, *, provider: Optional[str] = None) -> Dict[str, Any]:
    """
    Composition root: load YAML, build transport + orchestrator, wire the assistant.
    Returns: dict with cfg, transport, orchestrator, assistant, secrets.
    """
    load_dotenv()
    cfg = load_config(config_path)

    if provider:
        cfg["provider"]["name"] = str(provider).lower()
        if cfg["provider"]["name"] not in PROVIDERS:
            raise ConfigError(
                f"Unknown provider.name '{cfg['provider']['name']}' (expected one of {', '.join(PROVIDERS)})."
            )

    configure_logging(cfg["logging"]["level"])

    # ----- Transport -----
    ProviderRegistry.ensure_imports()  # make sure built-ins register

    provider_name = cfg["provider"]["name"]
    provider_cfg = (cfg.get("providers") or {}).get(provider_name, {}) or {}
    Transport = ProviderRegistry.get(provider_name)
    transport = Transport.create(provider_cfg=provider_cfg)

    # ----- Secrets -----
    secrets_cfg = cfg.get("secrets") or {}
    method = secrets_cfg.get("method", "env")
    mapping = secrets_cfg.get("mapping", {})
    resolver = SecretsResolver(method=method, mapping=mapping)

    # ----- Orchestrator -----
    cred_cfg = cfg.get("credentials") or {}
    rule = CredentialRule(
        prefix=str(cred_cfg.get("prefix", GEMINI_KEY_PREFIX)),
        min_length=int(cred_cfg.get("min_length", GEMINI_KEY_MIN_LENGTH)),
    )
    policy = build_policy(cfg)
    orchestrator = CompletionOrchestrator(transport, policy, credential_rule=rule)

    max_chars = int((cfg.get("documents") or {}).get("max_chars", DEFAULT_MAX_DOCUMENT_CHARS))
    assistant = LegalAssistant(
        orchestrator,
        secrets=resolver,
        provider_name="gemini",
        max_document_chars=max_chars,
    )

    logger.info("LegalEase ready: provider=%s, %d candidate models", provider_name, len(policy.models))

    return {
        "cfg": cfg,
        "transport": transport,
        "orchestrator": orchestrator,
        "assistant": assistant,
        "secrets": resolver,
    }
