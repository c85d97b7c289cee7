"""Bounding and redaction of captured HTTP bodies. Only the logged copy is ever touched."""

import json
from dataclasses import dataclass
from typing import Iterable, Optional
from urllib.parse import parse_qsl, urlencode

MASK = "***"
TRUNCATION_MARKER = "…[truncated]"
NO_BODY = "(none)"
SENSITIVE_KEY_PARTS = ("password", "secret", "token")

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def is_allowed_content_type(content_type: Optional[str], allowed: Iterable[str]) -> bool:
    """Prefix match, case-insensitive, so parameters like '; charset=utf-8' are accepted."""
    if not content_type:
        return False
    ct = content_type.strip().lower()
    return any(ct.startswith(a.lower()) for a in allowed)


def is_sensitive_key(key: str) -> bool:
    k = key.lower()
    return any(part in k for part in SENSITIVE_KEY_PARTS)


def redact(text: str, content_type: Optional[str] = None) -> str:
    """
    Mask values of sensitive keys in a flat key/value body.

    JSON objects are re-serialized compactly; form-encoded bodies are re-encoded.
    Anything that does not parse as a flat key/value structure is returned
    unchanged.
    """
    if content_type and content_type.lower().startswith(FORM_CONTENT_TYPE):
        return _redact_form(text)
    return _redact_json(text)


def _redact_json(text: str) -> str:
    try:
        parsed = json.loads(text)
    except ValueError:
        return text
    if not isinstance(parsed, dict):
        return text
    masked = {k: (MASK if is_sensitive_key(k) else v) for k, v in parsed.items()}
    return json.dumps(masked, separators=(",", ":"), ensure_ascii=False)


def _redact_form(text: str) -> str:
    try:
        pairs = parse_qsl(text, keep_blank_values=True, strict_parsing=True)
    except ValueError:
        return text
    return urlencode([(k, MASK if is_sensitive_key(k) else v) for k, v in pairs], safe="*")


@dataclass
class CapturedBody:
    """Bounded copy of a body taken for logging. Request-scoped, never shared."""

    raw: bytes
    content_type: Optional[str]
    truncated: bool = False

    @classmethod
    def bounded(cls, data: bytes, content_type: Optional[str], max_bytes: int, more: bool = False) -> "CapturedBody":
        truncated = more or len(data) > max_bytes
        return cls(raw=data[:max_bytes], content_type=content_type, truncated=truncated)

    def render(self) -> str:
        """Redacted, bounded text for the log record."""
        if not self.raw:
            return NO_BODY
        # A multi-byte character may be split at the bound.
        text = self.raw.decode("utf-8", errors="replace")
        text = redact(text, self.content_type)
        if self.truncated:
            text += TRUNCATION_MARKER
        return text
