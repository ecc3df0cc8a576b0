# src/legalease/providers/gemini.py
from __future__ import annotations
import logging
from typing import Any, Dict, Optional

import httpx

from legalease.providers.registry import ProviderRegistry
from legalease.core.errors import ProviderTransientError
from legalease.core.outcomes import HttpReply

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_TIMEOUT = 60.0


@ProviderRegistry.register("gemini")
class GeminiTransport:
    """
    Thin transport over the Gemini generateContent REST endpoint:
    - one POST per call, the model id goes in the path and the key in the query
    - non-2xx replies are returned, not raised; classification happens upstream
    - httpx transport failures become ProviderTransientError
    """
    name = "gemini"

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        client: Optional[httpx.Client] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        # Allow an injected client (tests use httpx.MockTransport)
        self.client = client or httpx.Client(base_url=self.base_url, timeout=timeout)

    @classmethod
    def create(cls, *, provider_cfg: Dict[str, Any]) -> "GeminiTransport":
        cfg = provider_cfg or {}
        timeout = cfg.get("timeout", DEFAULT_TIMEOUT)
        return cls(
            base_url=cfg.get("base_url") or DEFAULT_BASE_URL,
            timeout=float(timeout) if timeout is not None else None,
        )

    def generate(self, model: str, api_key: str, body: Dict[str, Any]) -> HttpReply:
        try:
            resp = self.client.post(
                f"/models/{model}:generateContent",
                params={"key": api_key},
                json=body,
                headers={"Content-Type": "application/json"},
            )
        except httpx.TransportError as e:
            raise ProviderTransientError(f"{type(e).__name__}: {e}") from e
        logger.debug("gemini %s -> HTTP %s", model, resp.status_code)
        return HttpReply(status=resp.status_code, text=resp.text)

    def close(self) -> None:
        self.client.close()
