from __future__ import annotations
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from legalease.core.errors import InvalidCredentialError
from legalease.core.outcomes import (
    FAILURE_PRECEDENCE,
    AttemptKind,
    AttemptOutcome,
    OrchestrationResult,
    Success,
)
from legalease.core.ports import Transport
from legalease.prompts.builder import CompletionRequest
from legalease.resilience.classify import classify_exception, classify_reply
from legalease.resilience.guidance import failure_from_outcome, invalid_credential
from legalease.secrets.validation import CredentialRule, validate_api_key

logger = logging.getLogger(__name__)

# Lightest models first to conserve quota
DEFAULT_MODELS: Tuple[str, ...] = (
    "gemini-2.5-flash-lite",
    "gemini-2.0-flash-lite",
    "gemini-2.0-flash-lite-001",
    "gemini-2.5-flash",
    "gemini-2.0-flash",
    "gemini-2.0-flash-001",
    "gemini-1.5-flash-latest",
    "gemini-1.5-flash",
)


@dataclass(frozen=True)
class OrchestrationPolicy:
    """
    models: ranked candidates, tried strictly in order.
    max_retries: calls per model, including the first one.
    base_delay_ms: unit for both the linear 429 wait and the exponential backoff.
    deadline_s: optional wall-clock bound, checked before every call and every backoff.
    """
    models: Tuple[str, ...] = DEFAULT_MODELS
    max_retries: int = 3
    base_delay_ms: int = 2000
    deadline_s: Optional[float] = None

    def __post_init__(self) -> None:
        if not self.models:
            raise ValueError("OrchestrationPolicy.models must not be empty")
        if self.max_retries < 1:
            raise ValueError("OrchestrationPolicy.max_retries must be >= 1")
        if self.base_delay_ms < 0:
            raise ValueError("OrchestrationPolicy.base_delay_ms must be >= 0")

    @property
    def max_calls(self) -> int:
        return len(self.models) * self.max_retries

    def rate_limit_delay_ms(self, retry: int, hint_ms: Optional[int]) -> int:
        if hint_ms is not None:
            return hint_ms
        return self.base_delay_ms * (retry + 1)

    def backoff_delay_ms(self, retry: int) -> int:
        return self.base_delay_ms * (2 ** retry)


def _rank(outcome: AttemptOutcome) -> int:
    kind = outcome.failure_kind
    return FAILURE_PRECEDENCE.index(kind) if kind in FAILURE_PRECEDENCE else len(FAILURE_PRECEDENCE)


def _prefer(current: Optional[AttemptOutcome], new: AttemptOutcome) -> AttemptOutcome:
    # Ties go to the newer outcome so quota details stay fresh
    if current is None or _rank(new) <= _rank(current):
        return new
    return current


class CompletionOrchestrator:
    """
    Walks the candidate models in order until one returns a completion.

    Per model: 429 and transient failures are retried with backoff up to
    max_retries calls, 404 moves on immediately, 401/403 ends everything.
    Only the final Success or Failure leaves this class.
    """

    def __init__(
        self,
        transport: Transport,
        policy: Optional[OrchestrationPolicy] = None,
        *,
        credential_rule: CredentialRule = CredentialRule(),
        sleep: Optional[Callable[[float], None]] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.transport = transport
        self.policy = policy or OrchestrationPolicy()
        self.credential_rule = credential_rule
        self._sleep = sleep or time.sleep
        self._clock = clock or time.monotonic

    def _call(self, model: str, api_key: str, request: CompletionRequest, body) -> AttemptOutcome:
        try:
            reply = self.transport.generate(model, api_key, body)
        except KeyboardInterrupt:
            raise
        except Exception as e:
            return classify_exception(model, e)
        return classify_reply(model, reply, fallback_text=request.fallback_text)

    def _past_deadline(self, start: float) -> bool:
        deadline = self.policy.deadline_s
        return deadline is not None and self._clock() - start >= deadline

    def attempt_completion(self, request: CompletionRequest, api_key: Optional[str]) -> OrchestrationResult:
        try:
            api_key = validate_api_key(api_key, self.credential_rule)
        except InvalidCredentialError as e:
            logger.warning("Rejected API key before any call: %s", e)
            return invalid_credential(e.reason)

        policy = self.policy
        body = request.to_payload()
        start = self._clock()
        reported: Optional[AttemptOutcome] = None

        for model in policy.models:
            retry = 0
            while retry < policy.max_retries:
                if self._past_deadline(start):
                    logger.warning("Deadline of %.1fs reached before calling %s, giving up", policy.deadline_s, model)
                    return failure_from_outcome(reported)

                logger.info("Trying model %s (attempt %d)", model, retry + 1)
                outcome = self._call(model, api_key, request, body)

                if outcome.kind is AttemptKind.SUCCESS:
                    logger.info("Success with model %s on attempt %d", model, retry + 1)
                    return Success(text=outcome.text or "", model_used=model, attempt_number=retry + 1)

                logger.info("Model %s failed: %s (status %s)", model, outcome.kind.value, outcome.status)
                reported = _prefer(reported, outcome)

                if outcome.kind is AttemptKind.AUTH_FAILURE:
                    logger.warning("Authentication error, stopping all retries")
                    return failure_from_outcome(outcome)

                if outcome.kind is AttemptKind.MODEL_UNAVAILABLE:
                    break

                if retry >= policy.max_retries - 1:
                    logger.info("Max retries reached for model %s", model)
                    break

                if outcome.kind is AttemptKind.RATE_LIMITED:
                    delay_ms = policy.rate_limit_delay_ms(retry, outcome.retry_after_ms)
                else:
                    delay_ms = policy.backoff_delay_ms(retry)

                if policy.deadline_s is not None:
                    elapsed = self._clock() - start
                    if elapsed + delay_ms / 1000.0 > policy.deadline_s:
                        logger.warning("Deadline of %.1fs reached after %.1fs, giving up", policy.deadline_s, elapsed)
                        return failure_from_outcome(reported)

                logger.info("Waiting %dms before retrying %s", delay_ms, model)
                self._sleep(delay_ms / 1000.0)
                retry += 1

        logger.error("All models failed; reporting %s", reported.kind.value if reported else "nothing")
        return failure_from_outcome(reported)
