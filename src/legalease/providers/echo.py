from __future__ import annotations
from typing import Any, Dict, List, Optional
import json
import time

from legalease.providers.registry import ProviderRegistry
from legalease.core.outcomes import HttpReply

_LOREM_50 = (
    "Lorem ipsum dolor sit amet consectetur adipiscing elit sed do eiusmod tempor "
    "incididunt ut labore et dolore magna aliqua Curabitur non nulla sit amet nisl "
    "tempor convallis quis ac lectus Phasellus viverra nulla ut metus varius laoreet "
    "Quisque rutrum Aenean imperdiet Etiam ultricies nisi vel augue Curabitur ullamcorper ultricies nisi"
).split()


@ProviderRegistry.register("echo")
class EchoTransport:
    """
    Offline stub that answers every model with a fixed 50-word lorem ipsum,
    wrapped in a Gemini-shaped success body. No key is checked upstream.
    """
    name = "echo"

    def __init__(self, latency: float = 0.0, words: Optional[List[str]] = None):
        self.latency = float(latency)
        self.words = list(words) if words is not None else list(_LOREM_50)

    @classmethod
    def create(cls, *, provider_cfg: Dict[str, Any]) -> "EchoTransport":
        return cls(latency=float((provider_cfg or {}).get("latency", 0.0)))

    def generate(self, model: str, api_key: str, body: Dict[str, Any]) -> HttpReply:
        if self.latency > 0:
            time.sleep(self.latency)
        payload = {"candidates": [{"content": {"parts": [{"text": " ".join(self.words)}]}}]}
        return HttpReply(status=200, text=json.dumps(payload))

    def close(self) -> None:
        pass
