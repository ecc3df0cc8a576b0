class LegalEaseError(Exception):
    """Base class for all application errors."""

class ProviderError(LegalEaseError):
    """Base class for provider-level failures."""

class ProviderTransientError(ProviderError):
    """
    Retryable: timeouts, network hiccups, connection resets.
    Raised by transports; the orchestrator treats it as a network error.
    """

class InvalidCredentialError(LegalEaseError):
    """API key failed the local format check. No network call was made."""

    def __init__(self, reason: str):
        super().__init__(f"Invalid API key: {reason}")
        self.reason = reason

class InvalidRequestError(LegalEaseError):
    """User input cannot be turned into a completion request (empty message, blank document)."""
