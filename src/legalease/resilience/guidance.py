from __future__ import annotations
from typing import Optional

from legalease.core.outcomes import AttemptOutcome, Failure, FailureKind
from legalease.resilience.classify import is_free_tier_quota

QUOTA_SUGGESTIONS = [
    "Wait for quota reset (daily limits reset at midnight PT)",
    "Upgrade to paid tier at https://aistudio.google.com/",
    "Try analyzing smaller documents",
    "Try again in a few minutes",
]


def invalid_credential(reason: str = "") -> Failure:
    message = f"Invalid Gemini API key format ({reason})." if reason else "Invalid Gemini API key format."
    return Failure(
        kind=FailureKind.INVALID_CREDENTIAL,
        message=message,
        suggestions=["Gemini API keys start with 'AIza'; copy the full key from Google AI Studio"],
    )


def failure_from_outcome(outcome: Optional[AttemptOutcome]) -> Failure:
    """Turn the reported attempt into the caller-facing failure with guidance text."""
    if outcome is None or outcome.failure_kind is None:
        return Failure(kind=FailureKind.TRANSIENT, message="No model could be tried. Please try again.")

    kind = outcome.failure_kind
    status = outcome.status

    if kind is FailureKind.AUTH_FAILED:
        return Failure(
            kind=kind,
            message="API key is invalid or doesn't have permission. Please check your Gemini API key.",
            suggestions=["Check that the key is enabled for the Generative Language API"],
            status=status,
        )

    if kind is FailureKind.RATE_LIMITED:
        message = "You've exceeded your Gemini API quota limits."
        if is_free_tier_quota(outcome.error_body):
            message += (
                " You're on the free tier and have hit your daily limits."
                " Consider upgrading to a paid plan or wait for the quota to reset."
            )
        return Failure(kind=kind, message=message, suggestions=list(QUOTA_SUGGESTIONS),
                       status=status, quota_exceeded=True)

    if kind is FailureKind.UNAVAILABLE:
        return Failure(
            kind=kind,
            message="None of the Gemini models are accessible. This might be a regional availability issue.",
            suggestions=["Check model availability for your region", "Try again later"],
            status=status,
        )

    if kind is FailureKind.NETWORK_ERROR:
        return Failure(
            kind=kind,
            message="Could not reach the Gemini API. Please check your connection and try again.",
            suggestions=["Try again in a few minutes"],
        )

    return Failure(
        kind=FailureKind.TRANSIENT,
        message=f"Completion failed: {status or 'Unknown error'}. Please try again.",
        suggestions=["Try again in a few minutes"],
        status=status,
    )
