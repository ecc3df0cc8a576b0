from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from legalease.core.outcomes import Failure, OrchestrationResult
from legalease.prompts.builder import (
    DEFAULT_MAX_DOCUMENT_CHARS,
    build_chat_request,
    build_document_request,
)
from legalease.resilience.orchestrator import CompletionOrchestrator
from legalease.secrets.sources import SecretsResolver


@dataclass(frozen=True)
class ChatReply:
    response: str
    model: str
    attempt: int

    def to_dict(self) -> Dict[str, Any]:
        return {"response": self.response, "model": self.model, "attempt": self.attempt}


@dataclass(frozen=True)
class DocumentAnalysis:
    summary: str
    model: str
    attempt: int
    file_size: int
    truncated: bool
    key_points: List[str] = field(default_factory=lambda: [
        "Analysis completed",
        "Document processed successfully",
    ])
    risks: List[str] = field(default_factory=lambda: [
        "Please review AI analysis carefully",
        "This is not legal advice",
    ])
    recommendations: List[str] = field(default_factory=lambda: [
        "Consult a licensed attorney for important documents",
        "Review all terms before signing",
        "Keep copies of signed documents",
    ])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary,
            "model": self.model,
            "attempt": self.attempt,
            "file_size": self.file_size,
            "truncated": self.truncated,
            "key_points": list(self.key_points),
            "risks": list(self.risks),
            "recommendations": list(self.recommendations),
        }


class LegalAssistant:
    """
    Builds the domain prompts, runs them through the orchestrator and
    repackages the result for display. A caller-supplied key wins over
    the server-side default from the secrets resolver.
    """

    def __init__(
        self,
        orchestrator: CompletionOrchestrator,
        *,
        secrets: Optional[SecretsResolver] = None,
        provider_name: str = "gemini",
        max_document_chars: int = DEFAULT_MAX_DOCUMENT_CHARS,
    ):
        self.orchestrator = orchestrator
        self.secrets = secrets
        self.provider_name = provider_name
        self.max_document_chars = max_document_chars

    def _key(self, api_key: Optional[str]) -> Optional[str]:
        if api_key and api_key.strip():
            return api_key
        if self.secrets is not None:
            return self.secrets.secret(self.provider_name)
        return None

    def _run(self, request, api_key: Optional[str]) -> OrchestrationResult:
        return self.orchestrator.attempt_completion(request, self._key(api_key))

    def ask(self, message: Optional[str], api_key: Optional[str] = None) -> Union[ChatReply, Failure]:
        """Raises InvalidRequestError for an empty message."""
        result = self._run(build_chat_request(message), api_key)
        if not result.ok:
            return result
        return ChatReply(response=result.text, model=result.model_used, attempt=result.attempt_number)

    def analyze_document(self, content: Optional[str], api_key: Optional[str] = None) -> Union[DocumentAnalysis, Failure]:
        """Raises InvalidRequestError for a blank document."""
        request = build_document_request(content, self.max_document_chars)
        result = self._run(request, api_key)
        if not result.ok:
            return result
        return DocumentAnalysis(
            summary=result.text,
            model=result.model_used,
            attempt=result.attempt_number,
            file_size=len(content),
            truncated=len(content) > self.max_document_chars,
        )
