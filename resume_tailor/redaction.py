"""Masking of contact details and credentials before they reach a log line."""

from __future__ import annotations

import re
from typing import Any

EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
PHONE_RE = re.compile(r"\+?\d[\d\s().-]{7,}\d")
SECRET_RE = re.compile(r"\b(?:sk|rk|key)-[A-Za-z0-9_-]{8,}\b|\bBearer\s+[A-Za-z0-9._-]{8,}")

# Order matters: keys can contain digit runs that look like phone numbers.
_PATTERNS = (
    (EMAIL_RE, "[REDACTED_EMAIL]"),
    (SECRET_RE, "[REDACTED_KEY]"),
    (PHONE_RE, "[REDACTED_PHONE]"),
)


def redact_text(value: str, max_length: int = 200) -> str:
    """Mask sensitive substrings in *value* and cap it at *max_length* characters."""
    text = value or ""
    for pattern, placeholder in _PATTERNS:
        text = pattern.sub(placeholder, text)
    return text if len(text) <= max_length else text[:max_length] + "..."


def redact_for_log(value: Any, enabled: bool = True) -> Any:
    """Apply :func:`redact_text` to every string inside *value*."""
    if not enabled:
        return value
    if isinstance(value, str):
        return redact_text(value)
    if isinstance(value, dict):
        return {str(key): redact_for_log(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(redact_for_log(item) for item in value)
    return value
