from __future__ import annotations
from typing import Any, Dict, Protocol

from .outcomes import HttpReply


class Transport(Protocol):
    """
    Interface the orchestrator uses to reach a generative completion backend.
    """

    # Optional: surface the backend name for logging/headers
    name: str

    def generate(self, model: str, api_key: str, body: Dict[str, Any]) -> HttpReply:
        """
        One synchronous call for one model. Returns the raw status and body text.
        Transport-level failures (DNS, connect, read timeout) raise
        ProviderTransientError or the underlying client exception.
        """
        ...

    def close(self) -> None:
        """Release any pooled connections. Safe to call more than once."""
        ...
