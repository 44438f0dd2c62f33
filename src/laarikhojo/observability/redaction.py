"""Redaction helpers for safe logging.

Vendor phone numbers are the main PII flowing through the webhook. They
are logged only as short hashes; everything else passes through
`safe_log_context`.
"""

import hashlib
import re
from typing import Any

_PII_PATTERNS = (
    re.compile(r"\+?\d[\d\s\-()]{8,}\d"),
    re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"),
)

_REDACTED = "[REDACTED]"


def hash_phone(phone: str | None) -> str:
    """Non-reversible short hash of a phone number, for log correlation."""
    if not phone:
        return ""
    return hashlib.sha256(phone.encode()).hexdigest()[:12]


def redact_string(value: str) -> str:
    """Replace phone- and email-shaped substrings with a marker."""
    for pattern in _PII_PATTERNS:
        value = pattern.sub(_REDACTED, value)
    return value


def redact_value(value: Any) -> str:
    """String form of `value` that is safe to log.

    Strings are redacted; containers are reduced to their shape so webhook
    content never reaches the logs.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, dict):
        return f"dict(keys={sorted(str(k) for k in value)})"
    if isinstance(value, (list, tuple)):
        return f"list(len={len(value)})"
    return f"<{type(value).__name__}>"


def safe_log_context(**fields: Any) -> dict[str, str]:
    """Redacted copy of `fields`, ready for `extra={"extra_fields": ...}`."""
    return {key: redact_value(value) for key, value in fields.items()}
