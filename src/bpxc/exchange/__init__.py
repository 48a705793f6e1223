"""Backpack exchange access: operation catalog, transport, normalization and client.

USAGE:
    from bpxc.exchange import BackpackClient

    async with BackpackClient(private_b64, public_b64) as client:
        ticker = await client.ticker("SOL_USDC")
"""

from bpxc.exchange.client import BackpackClient
from bpxc.exchange.normalize import (
    coerce_numeric,
    extract_error_codes,
    normalize_response,
    raise_for_exchange_error,
)
from bpxc.exchange.registry import (
    DEFAULT_REGISTRY,
    HttpMethod,
    OperationDescriptor,
    OperationRegistry,
    build_registry,
)
from bpxc.exchange.transport import Transport

__all__ = [
    # Client
    "BackpackClient",
    # Registry
    "DEFAULT_REGISTRY",
    "HttpMethod",
    "OperationDescriptor",
    "OperationRegistry",
    "build_registry",
    # Transport
    "Transport",
    # Normalization
    "coerce_numeric",
    "extract_error_codes",
    "normalize_response",
    "raise_for_exchange_error",
]
