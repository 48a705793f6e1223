"""Response normalization for Backpack API calls.

Some Backpack endpoints send numeric fields as JSON strings ("price":
"101.5"). Responses are decoded in two passes: ``json.loads`` to a plain
tree, then ``coerce_numeric`` turns numeric-looking string leaves into
int/float. An ``error`` list in the payload signals an exchange-level
rejection regardless of HTTP status; its ``E``-prefixed codes are raised as
ExchangeApiError.
"""

from __future__ import annotations

import json
import re
from typing import Any

import httpx

from bpxc.errors import ExchangeApiError, TransportError, UnknownExchangeError
from bpxc.logging import get_logger, log_request_event

logger = get_logger("exchange.normalize")

NUMERIC_LITERAL = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)
_INTEGER_LITERAL = re.compile(r"[+-]?\d+", re.ASCII)

ERROR_CODE_PREFIX = "E"


def coerce_scalar(value: Any) -> Any:
    """Convert a fully numeric string to int or float; leave anything else."""
    if not isinstance(value, str) or not NUMERIC_LITERAL.fullmatch(value):
        return value
    if _INTEGER_LITERAL.fullmatch(value):
        return int(value)
    return float(value)


def coerce_numeric(node: Any) -> Any:
    """Recursively coerce numeric-looking string leaves.

    Dicts and lists keep their shape, empty lists pass through, and values
    that are already numbers are untouched, so the transform is idempotent.
    """
    if isinstance(node, dict):
        return {key: coerce_numeric(value) for key, value in node.items()}
    if isinstance(node, list):
        if not node:
            return node
        return [coerce_numeric(item) for item in node]
    return coerce_scalar(node)


def extract_error_codes(payload: Any) -> tuple[list[str], list[Any]] | None:
    """Pull exchange error codes out of a payload.

    Returns:
        None when the payload carries no (or an empty) ``error`` field,
        otherwise (E-stripped codes, raw entries)
    """
    if not isinstance(payload, dict):
        return None

    raw = payload.get("error")
    if not raw:
        return None

    entries = list(raw) if isinstance(raw, list) else [raw]
    codes = [
        entry[len(ERROR_CODE_PREFIX) :]
        for entry in entries
        if isinstance(entry, str) and entry.startswith(ERROR_CODE_PREFIX)
    ]
    return codes, entries


def raise_for_exchange_error(
    payload: Any,
    instruction: str,
    url: str = "",
    request_body: str | None = None,
) -> None:
    """Raise if ``payload`` carries an exchange-level error.

    Raises:
        ExchangeApiError: With the E-stripped codes
        UnknownExchangeError: If ``error`` holds no E-prefixed code
    """
    extracted = extract_error_codes(payload)
    if extracted is None:
        return

    codes, entries = extracted
    if not codes:
        log_request_event("EXCHANGE_ERROR", instruction, codes=[], raw=entries)
        raise UnknownExchangeError(
            instruction=instruction,
            url=url,
            request_body=request_body,
            raw_errors=entries,
        )

    log_request_event("EXCHANGE_ERROR", instruction, codes=codes)
    raise ExchangeApiError(
        codes=codes,
        instruction=instruction,
        url=url,
        request_body=request_body,
    )


def normalize_response(
    response: httpx.Response,
    instruction: str,
    url: str = "",
    request_body: str | None = None,
) -> Any:
    """Decode a response into the caller-facing envelope.

    Args:
        response: Successful (2xx) HTTP response
        instruction: Instruction name, for error context
        url: Request URL, for error context
        request_body: Serialized request body, for error context

    Returns:
        Coerced JSON tree for application/json, text for text/plain,
        otherwise the response itself

    Raises:
        ExchangeApiError: If the JSON payload carries error codes
        UnknownExchangeError: If it carries an unrecognized error
        TransportError: If a JSON body cannot be decoded
    """
    content_type = response.headers.get("content-type", "")

    if "application/json" in content_type:
        try:
            parsed = json.loads(response.text)
        except json.JSONDecodeError as e:
            raise TransportError(
                f"Invalid JSON from {instruction}: {e}",
                status_code=response.status_code,
                response_body=response.text[:500],
                category="decode",
            ) from e

        envelope = coerce_numeric(parsed)
        raise_for_exchange_error(envelope, instruction, url=url, request_body=request_body)
        return envelope

    if "text/plain" in content_type:
        return response.text

    logger.debug(f"Unhandled content type {content_type!r} for {instruction}")
    return response
