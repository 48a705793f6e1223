"""Signed-request client for the Backpack Exchange REST API."""

from bpxc.errors import (
    BackpackError,
    CredentialsError,
    ExchangeApiError,
    InvalidKeyPairError,
    InvalidOperationError,
    TransportError,
    UnknownExchangeError,
)
from bpxc.exchange.client import BackpackClient

__version__ = "0.1.0"

__all__ = [
    "BackpackClient",
    "BackpackError",
    "CredentialsError",
    "ExchangeApiError",
    "InvalidKeyPairError",
    "InvalidOperationError",
    "TransportError",
    "UnknownExchangeError",
    "__version__",
]
