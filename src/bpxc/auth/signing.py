"""Request signing for Backpack private endpoints.

AUTHENTICATION:
Each private request carries four headers:
1. X-Timestamp: Unix time in milliseconds
2. X-Window: Validity window in milliseconds (default 5000)
3. X-API-Key: Base64 public key
4. X-Signature: Base64 Ed25519 signature of the canonical message

CANONICAL MESSAGE:
    instruction=<name>&<params sorted by key>&timestamp=<ts>&window=<w>

Parameters are percent-encoded the same way a browser query string would be
(RFC 3986, space as %20). The parameter segment is omitted when there are no
parameters. The server rebuilds this string byte for byte, so any change in
ordering or encoding makes the signature invalid.
"""

from __future__ import annotations

import base64
import binascii
import math
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any
from urllib.parse import quote

from bpxc.auth.keys import KeyPair, PrivateKeyHandle, PublicKeyHandle
from bpxc.config import DEFAULT_WINDOW_MS

Params = Mapping[str, Any]


def _format_float(value: float) -> str:
    """Render a float the way JavaScript's Number#toString does."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"

    sign = "-" if value < 0 else ""
    shortest = Decimal(repr(abs(value))).normalize().as_tuple()
    digits = "".join(str(d) for d in shortest.digits)
    k = len(digits)
    n = int(shortest.exponent) + k  # decimal point position relative to digits

    if k <= n <= 21:
        body = digits + "0" * (n - k)
    elif 0 < n <= 21:
        body = f"{digits[:n]}.{digits[n:]}"
    elif -6 < n <= 0:
        body = "0." + "0" * (-n) + digits
    else:
        exp = n - 1
        mantissa = digits[0] + (f".{digits[1:]}" if k > 1 else "")
        body = f"{mantissa}e{'+' if exp >= 0 else '-'}{abs(exp)}"
    return sign + body


def encode_value(value: Any) -> str:
    """Render a scalar parameter value as it appears on the wire.

    Raises:
        TypeError: For non-scalar values (lists, dicts)
    """
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _format_float(value)
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, (list, tuple, set, dict)):
        raise TypeError(f"Parameter values must be scalars, got {type(value).__name__}")
    return str(value)


def serialize_pairs(pairs: Iterable[tuple[str, Any]]) -> str:
    """Join ``key=value`` pairs with ``&``, skipping ``None`` values."""
    return "&".join(
        f"{quote(str(key), safe='')}={quote(encode_value(value), safe='')}"
        for key, value in pairs
        if value is not None
    )


def build_message(
    instruction: str,
    params: Params | None,
    timestamp: int,
    window: int = DEFAULT_WINDOW_MS,
) -> bytes:
    """Build the canonical byte string to sign.

    Args:
        instruction: Instruction name (e.g. "orderExecute")
        params: Request parameters; key order is irrelevant
        timestamp: Unix time in milliseconds
        window: Validity window in milliseconds

    Returns:
        UTF-8 encoded canonical message
    """
    params = params or {}
    body = serialize_pairs((key, params[key]) for key in sorted(params))
    header = serialize_pairs((("timestamp", timestamp), ("window", window)))

    message = f"instruction={instruction}&" + (f"{body}&" if body else "") + header
    return message.encode("utf-8")


def sign_message(message: bytes, private_key: PrivateKeyHandle) -> str:
    """Sign a canonical message.

    Returns:
        Base64-encoded Ed25519 signature
    """
    return base64.b64encode(private_key.sign(message)).decode()


def verify_signature(message: bytes, signature_b64: str, public_key: PublicKeyHandle) -> bool:
    """Check a base64 signature against a message and public key."""
    try:
        signature = base64.b64decode(signature_b64, validate=True)
    except (binascii.Error, ValueError):
        return False
    return public_key.verify(signature, message)


def current_millis() -> int:
    """Current Unix time in milliseconds."""
    return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class AuthHeaders:
    """Authentication headers for one private request."""

    timestamp: int
    window: int
    api_key: str
    signature: str

    def as_dict(self) -> dict[str, str]:
        """Render as HTTP headers."""
        return {
            "X-Timestamp": str(self.timestamp),
            "X-Window": str(self.window),
            "X-API-Key": self.api_key,
            "X-Signature": self.signature,
        }


class RequestSigner:
    """Produces fresh auth headers for private requests.

    Holds only immutable state, so one signer can serve concurrent calls.
    """

    def __init__(
        self,
        keypair: KeyPair,
        window: int = DEFAULT_WINDOW_MS,
        clock: Callable[[], int] | None = None,
    ) -> None:
        """Initialize signer.

        Args:
            keypair: Validated key pair
            window: Validity window in milliseconds
            clock: Millisecond clock, for testability
        """
        self._keypair = keypair
        self._window = window
        self._clock = clock or current_millis

    @property
    def window(self) -> int:
        return self._window

    def auth_headers(self, instruction: str, params: Params | None = None) -> AuthHeaders:
        """Sign ``instruction`` + ``params`` with a fresh timestamp."""
        timestamp = self._clock()
        message = build_message(instruction, params, timestamp, self._window)
        return AuthHeaders(
            timestamp=timestamp,
            window=self._window,
            api_key=self._keypair.api_key,
            signature=sign_message(message, self._keypair.private),
        )
