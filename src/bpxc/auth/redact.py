"""Redaction utilities to keep key material out of logs.

USAGE:
    from bpxc.auth.redact import REDACTED, redact_secrets, safe_dict_for_logging

    # Redact known secret patterns
    safe_msg = redact_secrets(f"Key is {private_key}")

    # Copy of headers or params with secret keys replaced
    safe_headers = safe_dict_for_logging(dict(request.headers))
"""

from __future__ import annotations

import re
from re import Pattern

# Placeholder for redacted content
REDACTED = "***REDACTED***"

# Patterns for common secret formats
SECRET_PATTERNS: list[tuple[str, Pattern[str]]] = [
    # Ed25519 seeds and public keys (32 bytes -> 44 base64 chars with one '=')
    ("ed25519_key", re.compile(r"(?<![A-Za-z0-9+/])[A-Za-z0-9+/]{43}=(?![A-Za-z0-9+/=])")),
    # Ed25519 signatures (64 bytes -> 88 base64 chars with '==')
    ("signature", re.compile(r"(?<![A-Za-z0-9+/])[A-Za-z0-9+/]{86}==(?![A-Za-z0-9+/=])")),
    # Hex-encoded 32-byte keys
    ("hex_key", re.compile(r"\b[a-fA-F0-9]{64}\b")),
    # Other long base64 blobs
    ("secret", re.compile(r"\b[A-Za-z0-9+/]{40,}={0,2}")),
]

# Header and dict keys whose values must never be logged
DEFAULT_REDACT_KEYS = frozenset(
    {
        "x-signature",
        "signature",
        "private_key",
        "privatekey",
        "private-key",
        "secret",
        "seed",
        "twofactortoken",
        "two_factor_token",
        "password",
        "token",
    }
)


def redact_secrets(text: str, replacement: str = REDACTED) -> str:
    """Redact known secret patterns from text.

    Args:
        text: Input text that may contain secrets
        replacement: String to replace secrets with

    Returns:
        Text with secrets replaced
    """
    result = text
    for _name, pattern in SECRET_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


def mask_string(value: str, visible_chars: int = 4) -> str:
    """Mask a string showing only first and last N characters.

    Example:
        >>> mask_string("1234567890abcdef", visible_chars=4)
        "1234...cdef"
    """
    if len(value) <= visible_chars * 2:
        return "*" * len(value)
    return f"{value[:visible_chars]}...{value[-visible_chars:]}"


def safe_dict_for_logging(
    data: dict[str, object], redact_keys: set[str] | None = None
) -> dict[str, object]:
    """Create a copy of a dict safe for logging by redacting secrets.

    Args:
        data: Dictionary that may contain secrets (params, headers)
        redact_keys: Additional keys to redact (case-insensitive)

    Returns:
        Copy of dict with secret values replaced
    """
    all_redact_keys = DEFAULT_REDACT_KEYS | {k.lower() for k in (redact_keys or set())}

    result: dict[str, object] = {}
    for k, v in data.items():
        if k.lower() in all_redact_keys:
            result[k] = REDACTED
        elif isinstance(v, dict):
            result[k] = safe_dict_for_logging(dict(v), redact_keys)
        else:
            result[k] = v
    return result
