# src/legalease/config_loader.py

from __future__ import annotations
from pathlib import Path
from typing import Any, Dict
import yaml

PROVIDERS = ("gemini", "echo")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(ValueError):
    pass


def _require(d: Dict[str, Any], dotted: str, typ: type) -> Any:
    cur: Any = d
    for k in dotted.split("."):
        if not isinstance(cur, dict) or k not in cur:
            raise ConfigError(f"Missing config key: {dotted}")
        cur = cur[k]
    if typ is bool and not isinstance(cur, bool):
        raise ConfigError(f"'{dotted}' must be a boolean")
    if typ is str and not isinstance(cur, str):
        raise ConfigError(f"'{dotted}' must be a string")
    # bool is an int subclass; reject it explicitly
    if typ is int and (isinstance(cur, bool) or not isinstance(cur, int)):
        raise ConfigError(f"'{dotted}' must be an integer")
    if typ is list and not isinstance(cur, list):
        raise ConfigError(f"'{dotted}' must be a list")
    return cur


def load_config(path: Path) -> Dict[str, Any]:
    if not path or not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    raw = yaml.safe_load(path.read_text())
    if not isinstance(raw, dict) or not raw:
        raise ConfigError(f"Config is empty or invalid YAML: {path}")

    # Validate required keys (no defaults here)
    _require(raw, "provider.name", str)
    models = _require(raw, "orchestrator.models", list)
    max_retries = _require(raw, "orchestrator.max_retries", int)
    base_delay = _require(raw, "orchestrator.base_delay_ms", int)

    if not models or not all(isinstance(m, str) and m.strip() for m in models):
        raise ConfigError("'orchestrator.models' must be a non-empty list of model ids")
    if max_retries < 1:
        raise ConfigError("'orchestrator.max_retries' must be >= 1")
    if base_delay < 0:
        raise ConfigError("'orchestrator.base_delay_ms' must be >= 0")

    deadline = raw["orchestrator"].get("deadline_s")
    if deadline is not None and (isinstance(deadline, bool) or not isinstance(deadline, (int, float)) or deadline <= 0):
        raise ConfigError("'orchestrator.deadline_s' must be a positive number or null")

    # Normalise enumerations
    provider = str(raw["provider"]["name"]).lower()
    if provider not in PROVIDERS:
        raise ConfigError(f"Unknown provider.name '{provider}' (expected one of {', '.join(PROVIDERS)}).")
    raw["provider"]["name"] = provider
    raw["orchestrator"]["models"] = [m.strip() for m in models]

    logging_cfg = raw.get("logging") or {}
    level = str(logging_cfg.get("level", "INFO")).upper()
    if level not in LOG_LEVELS:
        raise ConfigError(f"Unknown logging.level '{level}'.")
    raw["logging"] = {**logging_cfg, "level": level}

    return raw
