from __future__ import annotations

import re
from typing import Any


_EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}\b")
_BEARER_RE = re.compile(r"(?i)\bBearer\s+[A-Za-z0-9\-._~+/]+=*")
_JWT_RE = re.compile(r"\b[A-Za-z0-9\-_]{20,}\.[A-Za-z0-9\-_]{20,}\.[A-Za-z0-9\-_]{20,}\b")
_SUPABASE_KEY_RE = re.compile(r"\bsb_(?:publishable|secret)_[A-Za-z0-9\-_]{16,}\b")

_MAX_TEXT = 1200


def redact_text(text: str) -> str:
    """Strip credentials and email addresses from free text before it is stored."""
    if not text:
        return text
    out = _BEARER_RE.sub("Bearer [REDACTED_TOKEN]", text)
    out = _JWT_RE.sub("[REDACTED_JWT]", out)
    out = _SUPABASE_KEY_RE.sub("[REDACTED_SUPABASE_KEY]", out)
    out = _EMAIL_RE.sub("[REDACTED_EMAIL]", out)
    return out


def sanitize_for_log(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        return redact_text(value)[:_MAX_TEXT]
    if isinstance(value, list):
        return [sanitize_for_log(v) for v in value]
    if isinstance(value, dict):
        return {str(k)[:128]: sanitize_for_log(v) for k, v in value.items()}
    if isinstance(value, (int, float, bool)):
        return value
    return str(value)[:_MAX_TEXT]
