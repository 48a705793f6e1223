"""Retry with exponential backoff for Backpack API calls.

Delay before retry k (k = 1..max_retries) is ``k ** backoff_exponent``
seconds: 1, 2.83, 5.2, 8, ... about 143s in total for 10 retries. No jitter.

Retry policies:
- blind (default): every failure raised by an attempt is retried
- classified: only transient failures are retried
    - TransportError with category timeout, network, 429 or 5xx

Never retried under either policy:
- InvalidOperationError, InvalidKeyPairError, CredentialsError (raised before
  any attempt)

After the last retry the last error is re-raised unmodified.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from bpxc.auth.redact import redact_secrets
from bpxc.errors import (
    CredentialsError,
    ExchangeApiError,
    InvalidKeyPairError,
    InvalidOperationError,
    TransportError,
)
from bpxc.logging import get_logger, log_request_event

if TYPE_CHECKING:
    from bpxc.config import Settings

logger = get_logger("resilience")

T = TypeVar("T")

SleepFn = Callable[[float], Coroutine[Any, Any, None]]


@dataclass(frozen=True)
class RetryConfig:
    """Retry configuration."""

    max_retries: int = 10  # Retries after the initial attempt
    backoff_exponent: float = 1.5
    policy: str = "blind"  # "blind" or "classified"

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryConfig:
        return cls(
            max_retries=settings.max_retries,
            backoff_exponent=settings.backoff_exponent,
            policy=settings.retry_policy,
        )


@dataclass
class RetryState:
    """Retry bookkeeping for one logical call."""

    attempt: int = 0  # Attempts made so far, including the initial one
    next_delay: float = 0.0
    last_category: str | None = None

    @property
    def retry_count(self) -> int:
        """Retries made (attempts after the first)."""
        return max(0, self.attempt - 1)


def classify_error(error: BaseException) -> tuple[bool, str]:
    """Check if an error is transient.

    Args:
        error: The exception to check

    Returns:
        Tuple of (is_transient, error_category)
        Categories: "429", "5xx", "timeout", "network", "4xx", "exchange",
        "invalid", "unknown"
    """
    if isinstance(error, TransportError):
        return error.retryable, error.category

    if isinstance(error, ExchangeApiError):
        return False, "exchange"

    if isinstance(error, InvalidOperationError | InvalidKeyPairError | CredentialsError):
        return False, "invalid"

    if isinstance(error, asyncio.TimeoutError):
        return True, "timeout"

    return False, "unknown"


def should_retry(error: BaseException, policy: str) -> tuple[bool, str]:
    """Decide whether ``error`` re-enters the backoff loop under ``policy``."""
    transient, category = classify_error(error)
    if policy == "blind":
        return category != "invalid", category
    return transient, category


def compute_backoff(retry_number: int, exponent: float = 1.5) -> float:
    """Delay in seconds before the given retry.

    Args:
        retry_number: 1-based retry number
        exponent: Backoff exponent

    Returns:
        Delay in seconds
    """
    if retry_number < 1:
        return 0.0
    return float(retry_number**exponent)


async def retry_call(  # noqa: UP047
    call_fn: Callable[[], Awaitable[T]],
    config: RetryConfig,
    instruction: str = "",
    sleep_fn: SleepFn | None = None,
    state: RetryState | None = None,
) -> T:
    """Run an async call with retry and backoff.

    ``call_fn`` is invoked once per attempt, so anything it builds (timestamps,
    signatures) is fresh on every attempt.

    Args:
        call_fn: Zero-argument coroutine factory performing one attempt
        config: Retry configuration
        instruction: Instruction name, for logging
        sleep_fn: Optional async sleep function for testability
        state: Optional state object, updated in place

    Returns:
        Result of the first successful attempt

    Raises:
        Exception: The last error once retries are exhausted, or the first
            error the policy refuses to retry
    """
    state = state if state is not None else RetryState()
    sleep = sleep_fn or asyncio.sleep

    while True:
        state.attempt += 1
        try:
            return await call_fn()
        except Exception as e:
            retry, category = should_retry(e, config.policy)
            state.last_category = category

            if not retry:
                logger.debug(f"Non-retryable error (attempt {state.attempt}): {category}")
                raise

            if state.retry_count >= config.max_retries:
                log_request_event(
                    "GIVE_UP",
                    instruction,
                    attempts=state.attempt,
                    category=category,
                )
                raise

            state.next_delay = compute_backoff(state.attempt, config.backoff_exponent)
            detail = e.response_body if isinstance(e, TransportError) else None
            logger.warning(
                f"Backpack API error, retrying in {state.next_delay:.2f}s: "
                f"{redact_secrets(str(e))}",
                extra={
                    "instruction": instruction,
                    "attempt": state.attempt,
                    "backoff": state.next_delay,
                    "category": category,
                    "response_body": redact_secrets(detail) if detail else None,
                },
            )
            await sleep(state.next_delay)

