"""Tests for the operation catalog."""

from __future__ import annotations

import pytest

from bpxc.errors import InvalidOperationError
from bpxc.exchange.registry import (
    DEFAULT_REGISTRY,
    PRIVATE_OPERATIONS,
    PUBLIC_OPERATIONS,
    HttpMethod,
    OperationDescriptor,
    OperationRegistry,
    build_registry,
)


class TestDefaultRegistry:
    """Tests for the built-in Backpack catalog."""

    def test_counts(self) -> None:
        assert len(DEFAULT_REGISTRY.public) == len(PUBLIC_OPERATIONS) == 10
        assert len(DEFAULT_REGISTRY.private) == len(PRIVATE_OPERATIONS) == 12
        assert len(DEFAULT_REGISTRY) == 22

    def test_order_execute(self) -> None:
        descriptor = DEFAULT_REGISTRY.require("orderExecute")

        assert descriptor.url == "https://api.backpack.exchange/api/v1/order"
        assert descriptor.method == HttpMethod.POST
        assert descriptor.auth_required is True

    def test_public_descriptor(self) -> None:
        descriptor = DEFAULT_REGISTRY.require("tradesHistory")

        assert descriptor.url == "https://api.backpack.exchange/api/v1/trades/history"
        assert descriptor.method == HttpMethod.GET
        assert descriptor.auth_required is False

    def test_shared_url_different_verbs(self) -> None:
        """orderExecute, orderQuery and orderCancel share one URL."""
        descriptors = [
            DEFAULT_REGISTRY.require(n) for n in ("orderExecute", "orderQuery", "orderCancel")
        ]
        urls = {d.url for d in descriptors}
        methods = {d.method for d in descriptors}

        assert len(urls) == 1
        assert methods == {HttpMethod.POST, HttpMethod.GET, HttpMethod.DELETE}

    def test_unknown_instruction(self) -> None:
        assert DEFAULT_REGISTRY.lookup("fooBar") is None
        assert "fooBar" not in DEFAULT_REGISTRY

        with pytest.raises(InvalidOperationError, match="fooBar is not a valid API method."):
            DEFAULT_REGISTRY.require("fooBar")

    def test_namespace_membership(self) -> None:
        assert DEFAULT_REGISTRY.is_private("balanceQuery")
        assert not DEFAULT_REGISTRY.is_private("ticker")
        assert "ticker" in DEFAULT_REGISTRY
        assert "balanceQuery" in DEFAULT_REGISTRY

    def test_iteration_public_first(self) -> None:
        names = [d.name for d in DEFAULT_REGISTRY]

        assert names[: len(PUBLIC_OPERATIONS)] == [row[0] for row in PUBLIC_OPERATIONS]
        assert names[len(PUBLIC_OPERATIONS) :] == [row[0] for row in PRIVATE_OPERATIONS]

    def test_read_only(self) -> None:
        with pytest.raises(TypeError):
            public = DEFAULT_REGISTRY.public
            public["evil"] = DEFAULT_REGISTRY.require("ticker")  # type: ignore[index]


class TestBuildRegistry:
    """Tests for build_registry and OperationRegistry."""

    def test_custom_base_url(self) -> None:
        registry = build_registry("http://localhost:8080")
        assert registry.require("balanceQuery").url == "http://localhost:8080/api/v1/capital"

    def test_trailing_slash_not_doubled(self) -> None:
        registry = build_registry("http://localhost:8080/")
        assert registry.require("ping").url == "http://localhost:8080/api/v1/ping"

    def test_overlapping_namespaces_rejected(self) -> None:
        descriptor = OperationDescriptor(
            name="ping", url="http://x/ping", method=HttpMethod.GET, auth_required=False
        )
        with pytest.raises(ValueError, match="both namespaces"):
            OperationRegistry(public={"ping": descriptor}, private={"ping": descriptor})

    def test_injected_registry_is_isolated(self) -> None:
        """Mutating the source mapping after construction has no effect."""
        descriptor = OperationDescriptor(
            name="ping", url="http://x/ping", method=HttpMethod.GET, auth_required=False
        )
        source = {"ping": descriptor}
        registry = OperationRegistry(public=source, private={})
        source.clear()

        assert registry.require("ping") is descriptor

    def test_descriptor_frozen(self) -> None:
        descriptor = DEFAULT_REGISTRY.require("ping")
        with pytest.raises(AttributeError):
            descriptor.url = "http://evil"  # type: ignore[misc]
