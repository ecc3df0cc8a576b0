# src/legalease/core/outcomes.py
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class AttemptKind(str, Enum):
    SUCCESS = "success"
    RATE_LIMITED = "rate_limited"
    AUTH_FAILURE = "auth_failure"
    MODEL_UNAVAILABLE = "model_unavailable"
    TRANSIENT = "transient"
    NETWORK_ERROR = "network_error"


class FailureKind(str, Enum):
    """Machine-readable kinds handed to callers. Values are part of the wire contract."""
    INVALID_CREDENTIAL = "invalid_credential"
    RATE_LIMITED = "rate_limited"
    AUTH_FAILED = "auth_failed"
    UNAVAILABLE = "unavailable"
    TRANSIENT = "transient"
    NETWORK_ERROR = "network_error"


# Highest first. Used to pick the reported kind when models fail differently.
FAILURE_PRECEDENCE: List[FailureKind] = [
    FailureKind.AUTH_FAILED,
    FailureKind.RATE_LIMITED,
    FailureKind.UNAVAILABLE,
    FailureKind.TRANSIENT,
    FailureKind.NETWORK_ERROR,
]

_ATTEMPT_TO_FAILURE = {
    AttemptKind.RATE_LIMITED: FailureKind.RATE_LIMITED,
    AttemptKind.AUTH_FAILURE: FailureKind.AUTH_FAILED,
    AttemptKind.MODEL_UNAVAILABLE: FailureKind.UNAVAILABLE,
    AttemptKind.TRANSIENT: FailureKind.TRANSIENT,
    AttemptKind.NETWORK_ERROR: FailureKind.NETWORK_ERROR,
}


@dataclass(frozen=True)
class HttpReply:
    """Raw upstream reply as seen by a transport."""
    status: int
    text: str


@dataclass(frozen=True)
class AttemptOutcome:
    """
    Classification of one HTTP call.
    - text: generated text (SUCCESS only)
    - retry_after_ms: provider delay hint (RATE_LIMITED only, may be None)
    - status / error_body: kept so the final failure can inspect quota details
    """
    kind: AttemptKind
    model: str
    text: Optional[str] = None
    retry_after_ms: Optional[int] = None
    status: Optional[int] = None
    error_body: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def failure_kind(self) -> Optional[FailureKind]:
        return _ATTEMPT_TO_FAILURE.get(self.kind)


@dataclass(frozen=True)
class Success:
    text: str
    model_used: str
    attempt_number: int
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    message: str
    suggestions: List[str] = field(default_factory=list)
    status: Optional[int] = None
    quota_exceeded: bool = False
    ok: bool = field(default=False, init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "kind": self.kind.value,
            "suggestions": list(self.suggestions),
            "quota_exceeded": self.quota_exceeded,
        }


OrchestrationResult = Union[Success, Failure]
