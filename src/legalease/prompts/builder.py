# src/legalease/prompts/builder.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from legalease.core.errors import InvalidRequestError

DEFAULT_MAX_DOCUMENT_CHARS = 4000

CHAT_PROMPT = """You are LegalEase, an AI legal assistant. Your role is to help people understand legal issues in simple, clear language.

IMPORTANT GUIDELINES:
- Always provide a clear disclaimer that this is informational only, not legal advice
- Explain legal concepts in plain English
- Suggest when someone should consult a licensed lawyer
- Focus on general legal principles and common scenarios
- Be helpful but emphasize the importance of professional legal counsel for serious matters

User question: {message}

Please provide a helpful, informative response while following the guidelines above."""

# Kept short on purpose: document analysis runs on the lightest-quota models
DOCUMENT_PROMPT = """Legal doc analyzer. Brief analysis with disclaimer.

Doc: {content}

Provide: summary, key points, risks, advice. Keep concise."""

CHAT_FALLBACK = "I apologize, but I could not generate a response. Please try again."
DOCUMENT_FALLBACK = "Could not analyze document."

HARM_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)


@dataclass(frozen=True)
class GenerationConfig:
    temperature: float
    max_output_tokens: int
    top_p: Optional[float] = None
    top_k: Optional[int] = None

    def to_payload(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"temperature": self.temperature, "maxOutputTokens": self.max_output_tokens}
        if self.top_p is not None:
            out["topP"] = self.top_p
        if self.top_k is not None:
            out["topK"] = self.top_k
        return out


@dataclass(frozen=True)
class SafetySetting:
    category: str
    threshold: str = "BLOCK_MEDIUM_AND_ABOVE"


@dataclass(frozen=True)
class CompletionRequest:
    """
    Immutable prompt + generation settings for one user-initiated call.
    fallback_text is what a caller sees when the backend answers 2xx without text.
    """
    prompt: str
    generation: GenerationConfig
    safety: Tuple[SafetySetting, ...] = field(default_factory=tuple)
    fallback_text: str = CHAT_FALLBACK

    def to_payload(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "contents": [{"parts": [{"text": self.prompt}]}],
            "generationConfig": self.generation.to_payload(),
        }
        if self.safety:
            body["safetySettings"] = [
                {"category": s.category, "threshold": s.threshold} for s in self.safety
            ]
        return body


def build_chat_request(message: Optional[str]) -> CompletionRequest:
    if not message or not message.strip():
        raise InvalidRequestError("Message is required")
    return CompletionRequest(
        prompt=CHAT_PROMPT.format(message=message),
        generation=GenerationConfig(temperature=0.7, max_output_tokens=1024),
        fallback_text=CHAT_FALLBACK,
    )


def truncate_document(content: Optional[str], max_chars: int = DEFAULT_MAX_DOCUMENT_CHARS) -> Tuple[str, bool]:
    """Returns (truncated_text, was_truncated)."""
    content = content or ""
    return content[:max_chars], len(content) > max_chars


def build_document_request(content: Optional[str], max_chars: int = DEFAULT_MAX_DOCUMENT_CHARS) -> CompletionRequest:
    truncated, _ = truncate_document(content, max_chars)
    if not truncated.strip():
        raise InvalidRequestError("File appears to be empty")
    return CompletionRequest(
        prompt=DOCUMENT_PROMPT.format(content=truncated),
        generation=GenerationConfig(temperature=0.3, max_output_tokens=512, top_p=0.8, top_k=10),
        safety=tuple(SafetySetting(c) for c in HARM_CATEGORIES),
        fallback_text=DOCUMENT_FALLBACK,
    )
