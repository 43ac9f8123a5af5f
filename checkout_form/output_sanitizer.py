"""Output sanitization: redact card numbers and credentials before text reaches logs or tool output."""
import re
from typing import Any

# Credential patterns
_CREDENTIAL_PATTERNS = [
    re.compile(r"(?i)(api[_-]?key|secret|password|token|authorization)\s*[=:]\s*\S+"),
    re.compile(r"(?i)bearer\s+[A-Za-z0-9._\-]+"),
    re.compile(r"\b(?:sk|rk)_(?:live|test)_[A-Za-z0-9]{10,}"),   # processor secret keys
    re.compile(r"\b(?:pi|seti)_[A-Za-z0-9]+_secret_[A-Za-z0-9]+"),  # client secrets
]

# Card number patterns (13-19 digits, optionally separated)
_CARD_NUMBER_PATTERN = re.compile(
    r"\b(?:\d{4}[-\s]?){2,4}\d{1,4}\b"
)

# ANSI escape codes
_ANSI_PATTERN = re.compile(r"\x1b\[[0-9;]*m")

# Upper bound for a single logged error payload
MAX_ERROR_DETAIL_CHARS = 500


def sanitize_output(text: str, max_chars: int = 50000) -> str:
    """
    Sanitize text before it leaves the process.

    - Strips ANSI escape codes
    - Redacts credential patterns
    - Redacts card numbers
    - Truncates to max_chars
    """
    text = _ANSI_PATTERN.sub("", text)

    for pattern in _CREDENTIAL_PATTERNS:
        text = pattern.sub("[REDACTED]", text)

    text = _CARD_NUMBER_PATTERN.sub("[CARD REDACTED]", text)

    if len(text) > max_chars:
        text = text[:max_chars] + f"\n\n[... truncated at {max_chars} chars]"

    return text


def sanitize_error_detail(error: Any) -> str:
    """Render an external error payload or exception for a log line."""
    if isinstance(error, BaseException):
        text = f"{type(error).__name__}: {error}"
    else:
        text = repr(error)
    return sanitize_output(text, max_chars=MAX_ERROR_DETAIL_CHARS)
