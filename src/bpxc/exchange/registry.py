"""Backpack operation catalog.

Maps instruction names to endpoint URL and HTTP verb. Instructions live in
one of two namespaces: public (no auth) and private (signed requests). The
registry is an immutable value built once and injected into the client.

API DOCUMENTATION:
https://docs.backpack.exchange/
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

from bpxc.config import DEFAULT_BASE_URL
from bpxc.errors import InvalidOperationError


class HttpMethod(str, Enum):
    """HTTP verbs used by the Backpack API."""

    GET = "GET"
    POST = "POST"
    DELETE = "DELETE"


@dataclass(frozen=True)
class OperationDescriptor:
    """Endpoint description for one instruction.

    Attributes:
        name: Instruction name, also signed as ``instruction=<name>``
        url: Absolute endpoint URL
        method: HTTP verb
        auth_required: Whether the request must be signed
    """

    name: str
    url: str
    method: HttpMethod
    auth_required: bool


# (instruction, path, method)
PUBLIC_OPERATIONS: tuple[tuple[str, str, HttpMethod], ...] = (
    ("assets", "api/v1/assets", HttpMethod.GET),
    ("markets", "api/v1/markets", HttpMethod.GET),
    ("ticker", "api/v1/ticker", HttpMethod.GET),
    ("depth", "api/v1/depth", HttpMethod.GET),
    ("klines", "api/v1/klines", HttpMethod.GET),
    ("status", "api/v1/status", HttpMethod.GET),
    ("ping", "api/v1/ping", HttpMethod.GET),
    ("time", "api/v1/time", HttpMethod.GET),
    ("trades", "api/v1/trades", HttpMethod.GET),
    ("tradesHistory", "api/v1/trades/history", HttpMethod.GET),
)

PRIVATE_OPERATIONS: tuple[tuple[str, str, HttpMethod], ...] = (
    ("balanceQuery", "api/v1/capital", HttpMethod.GET),
    ("depositAddressQuery", "wapi/v1/capital/deposit/address", HttpMethod.GET),
    ("depositQueryAll", "wapi/v1/capital/deposits", HttpMethod.GET),
    ("fillHistoryQueryAll", "wapi/v1/history/fills", HttpMethod.GET),
    ("orderCancel", "api/v1/order", HttpMethod.DELETE),
    ("orderCancelAll", "api/v1/orders", HttpMethod.DELETE),
    ("orderExecute", "api/v1/order", HttpMethod.POST),
    ("orderHistoryQueryAll", "wapi/v1/history/orders", HttpMethod.GET),
    ("orderQuery", "api/v1/order", HttpMethod.GET),
    ("orderQueryAll", "api/v1/orders", HttpMethod.GET),
    ("withdraw", "wapi/v1/capital/withdrawals", HttpMethod.POST),
    ("withdrawalQueryAll", "wapi/v1/capital/withdrawals", HttpMethod.GET),
)


class OperationRegistry:
    """Read-only lookup of instruction name to descriptor."""

    def __init__(
        self,
        public: Mapping[str, OperationDescriptor],
        private: Mapping[str, OperationDescriptor],
    ) -> None:
        overlap = set(public) & set(private)
        if overlap:
            raise ValueError(f"Instructions in both namespaces: {sorted(overlap)}")
        self._public = MappingProxyType(dict(public))
        self._private = MappingProxyType(dict(private))

    @property
    def public(self) -> Mapping[str, OperationDescriptor]:
        return self._public

    @property
    def private(self) -> Mapping[str, OperationDescriptor]:
        return self._private

    def lookup(self, name: str) -> OperationDescriptor | None:
        """Find a descriptor by instruction name (private namespace first)."""
        return self._private.get(name) or self._public.get(name)

    def require(self, name: str) -> OperationDescriptor:
        """Find a descriptor or raise InvalidOperationError."""
        descriptor = self.lookup(name)
        if descriptor is None:
            raise InvalidOperationError(name)
        return descriptor

    def is_private(self, name: str) -> bool:
        return name in self._private

    def __contains__(self, name: object) -> bool:
        return name in self._private or name in self._public

    def __iter__(self) -> Iterator[OperationDescriptor]:
        yield from self._public.values()
        yield from self._private.values()

    def __len__(self) -> int:
        return len(self._public) + len(self._private)


def build_registry(base_url: str = DEFAULT_BASE_URL) -> OperationRegistry:
    """Build the Backpack catalog against ``base_url``."""
    base = base_url if base_url.endswith("/") else f"{base_url}/"

    def _table(
        rows: tuple[tuple[str, str, HttpMethod], ...], auth: bool
    ) -> dict[str, OperationDescriptor]:
        return {
            name: OperationDescriptor(
                name=name,
                url=f"{base}{path}",
                method=method,
                auth_required=auth,
            )
            for name, path, method in rows
        }

    return OperationRegistry(
        public=_table(PUBLIC_OPERATIONS, auth=False),
        private=_table(PRIVATE_OPERATIONS, auth=True),
    )


DEFAULT_REGISTRY = build_registry()
