from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from legalease.core.errors import InvalidCredentialError

GEMINI_KEY_PREFIX = "AIza"
GEMINI_KEY_MIN_LENGTH = 35


@dataclass(frozen=True)
class CredentialRule:
    prefix: str = GEMINI_KEY_PREFIX
    min_length: int = GEMINI_KEY_MIN_LENGTH


def validate_api_key(key: Optional[str], rule: CredentialRule = CredentialRule()) -> str:
    """Return the key stripped of surrounding whitespace, or raise InvalidCredentialError."""
    if not key or not key.strip():
        raise InvalidCredentialError("key is required")
    key = key.strip()
    if not key.startswith(rule.prefix):
        raise InvalidCredentialError(f"expected prefix '{rule.prefix}'")
    if len(key) < rule.min_length:
        raise InvalidCredentialError(f"shorter than {rule.min_length} characters")
    return key


def is_valid_api_key(key: Optional[str], rule: CredentialRule = CredentialRule()) -> bool:
    try:
        validate_api_key(key, rule)
    except InvalidCredentialError:
        return False
    return True
