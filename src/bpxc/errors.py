"""Exception hierarchy for the Backpack client.

Every error raised by the library derives from ``BackpackError``. Transport
failures carry a ``category`` tag used by the retry policy to separate
transient failures (timeouts, connection errors, 429, 5xx) from permanent
ones (other 4xx).
"""

from __future__ import annotations

from collections.abc import Sequence

# TransportError categories that are worth retrying
RETRYABLE_CATEGORIES = frozenset({"timeout", "network", "429", "5xx"})


class BackpackError(Exception):
    """Base exception for Backpack client errors."""


class InvalidKeyPairError(BackpackError):
    """Supplied private and public key do not form a valid Ed25519 pair."""


class CredentialsError(BackpackError):
    """Credentials are missing or unreadable."""


class InvalidOperationError(BackpackError):
    """Instruction name is not present in the operation registry."""

    def __init__(self, instruction: str) -> None:
        super().__init__(f"{instruction} is not a valid API method.")
        self.instruction = instruction


class TransportError(BackpackError):
    """Network, timeout or non-2xx HTTP failure of a single attempt."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
        category: str = "network",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body
        self.category = category

    @property
    def retryable(self) -> bool:
        """Whether the failure is transient."""
        return self.category in RETRYABLE_CATEGORIES


class ExchangeApiError(BackpackError):
    """The exchange accepted the HTTP request but rejected the operation."""

    def __init__(
        self,
        codes: Sequence[str],
        instruction: str,
        url: str = "",
        request_body: str | None = None,
        message: str | None = None,
    ) -> None:
        self.codes = list(codes)
        self.instruction = instruction
        self.url = url
        self.request_body = request_body
        if message is None:
            message = f"url={url} body={request_body} err={', '.join(self.codes)}"
        super().__init__(message)


class UnknownExchangeError(ExchangeApiError):
    """An ``error`` field was present but held no ``E``-prefixed code."""

    def __init__(
        self,
        instruction: str,
        url: str = "",
        request_body: str | None = None,
        raw_errors: Sequence[object] = (),
    ) -> None:
        super().__init__(
            codes=[],
            instruction=instruction,
            url=url,
            request_body=request_body,
            message="Backpack API returned an unknown error",
        )
        self.raw_errors = list(raw_errors)
