"""Tests for the single-attempt HTTP transport."""

from __future__ import annotations

import json
import logging
from decimal import Decimal

import httpx
import pytest

from bpxc.auth.redact import REDACTED
from bpxc.auth.signing import AuthHeaders
from bpxc.config import DEFAULT_USER_AGENT, Settings
from bpxc.errors import TransportError
from bpxc.exchange.registry import DEFAULT_REGISTRY
from bpxc.exchange.transport import (
    FORM_CONTENT_TYPE,
    JSON_CONTENT_TYPE,
    Transport,
    encode_body,
    encode_query,
)
from bpxc.models import Side


class Recorder:
    """MockTransport handler recording requests and replaying one response."""

    def __init__(self, response: httpx.Response | Exception) -> None:
        self.response = response
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def make_transport(handler: Recorder) -> Transport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return Transport(settings=Settings(), client=client)


# =============================================================================
# Encoding
# =============================================================================


class TestEncoding:
    """Tests for query/body encoding helpers."""

    def test_encode_query(self) -> None:
        pairs = encode_query({"symbol": "SOL_USDC", "limit": 10, "postOnly": False, "x": None})
        assert pairs == [("symbol", "SOL_USDC"), ("limit", "10"), ("postOnly", "false")]

    def test_encode_body_compact(self) -> None:
        body = encode_body({"symbol": "SOL_USDC", "price": 20.5, "clientId": None})
        assert body == '{"symbol":"SOL_USDC","price":20.5}'

    def test_encode_body_decimal_and_enum(self) -> None:
        body = json.loads(encode_body({"quantity": Decimal("1.50"), "side": Side.ASK}))
        assert body == {"quantity": "1.50", "side": "Ask"}


# =============================================================================
# Requests
# =============================================================================


class TestSend:
    """Tests for Transport.send."""

    @pytest.mark.asyncio
    async def test_get_uses_query_string(self) -> None:
        handler = Recorder(httpx.Response(200, json={"ok": True}))
        transport = make_transport(handler)

        response = await transport.send(
            DEFAULT_REGISTRY.require("ticker"), {"symbol": "SOL_USDC"}
        )

        assert response.status_code == 200
        request = handler.requests[0]
        assert request.method == "GET"
        assert request.url.path == "/api/v1/ticker"
        assert request.url.params["symbol"] == "SOL_USDC"
        assert request.content == b""
        assert request.headers["content-type"] == FORM_CONTENT_TYPE
        assert request.headers["user-agent"] == DEFAULT_USER_AGENT
        assert "x-signature" not in request.headers

    @pytest.mark.asyncio
    async def test_get_without_params_has_no_query(self) -> None:
        handler = Recorder(httpx.Response(200, text="pong"))
        transport = make_transport(handler)

        await transport.send(DEFAULT_REGISTRY.require("ping"))

        assert handler.requests[0].url.query == b""

    @pytest.mark.asyncio
    async def test_post_uses_json_body_and_auth_headers(self) -> None:
        handler = Recorder(httpx.Response(200, json={"id": "1"}))
        transport = make_transport(handler)
        auth = AuthHeaders(timestamp=1700000000000, window=5000, api_key="pub", signature="sig")

        await transport.send(
            DEFAULT_REGISTRY.require("orderExecute"),
            {"symbol": "SOL_USDC", "side": "Bid", "price": 20.5},
            auth,
        )

        request = handler.requests[0]
        assert request.method == "POST"
        assert request.headers["content-type"] == JSON_CONTENT_TYPE
        assert json.loads(request.content) == {"symbol": "SOL_USDC", "side": "Bid", "price": 20.5}
        assert request.headers["x-timestamp"] == "1700000000000"
        assert request.headers["x-window"] == "5000"
        assert request.headers["x-api-key"] == "pub"
        assert request.headers["x-signature"] == "sig"
        assert request.url.query == b""

    @pytest.mark.asyncio
    async def test_debug_log_redacts_secrets(self, caplog: pytest.LogCaptureFixture) -> None:
        handler = Recorder(httpx.Response(200, json={"id": "7"}))
        transport = make_transport(handler)
        signature = "c2lnbmF0dXJlLWJ5dGVz"
        auth = AuthHeaders(
            timestamp=1700000000000, window=5000, api_key="pub", signature=signature
        )

        with caplog.at_level(logging.DEBUG, logger="bpxc"):
            await transport.send(
                DEFAULT_REGISTRY.require("withdraw"),
                {"symbol": "SOL", "quantity": 1.5, "twoFactorToken": "123456"},
                auth,
            )

        record = next(r for r in caplog.records if r.name == "bpxc.exchange.transport")
        headers = {k.lower(): v for k, v in record.headers.items()}  # type: ignore[attr-defined]
        assert headers["x-signature"] == REDACTED
        assert headers["x-api-key"] == "pub"
        assert record.params["twoFactorToken"] == REDACTED  # type: ignore[attr-defined]
        assert record.params["symbol"] == "SOL"  # type: ignore[attr-defined]
        assert signature not in caplog.text
        assert "123456" not in caplog.text

    @pytest.mark.asyncio
    async def test_delete_uses_json_body(self) -> None:
        handler = Recorder(httpx.Response(200, json=[]))
        transport = make_transport(handler)

        await transport.send(DEFAULT_REGISTRY.require("orderCancelAll"), {"symbol": "SOL_USDC"})

        request = handler.requests[0]
        assert request.method == "DELETE"
        assert json.loads(request.content) == {"symbol": "SOL_USDC"}

    @pytest.mark.asyncio
    async def test_custom_user_agent(self) -> None:
        handler = Recorder(httpx.Response(200, json={}))
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        transport = Transport(settings=Settings(user_agent="bot/1.0"), client=client)

        await transport.send(DEFAULT_REGISTRY.require("status"))

        assert handler.requests[0].headers["user-agent"] == "bot/1.0"


# =============================================================================
# Failures
# =============================================================================


class TestFailures:
    """Tests for failure mapping."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "category", "retryable"),
        [
            (500, "5xx", True),
            (503, "5xx", True),
            (429, "429", True),
            (404, "4xx", False),
            (400, "4xx", False),
        ],
    )
    async def test_status_mapping(self, status: int, category: str, retryable: bool) -> None:
        handler = Recorder(httpx.Response(status, text="nope"))
        transport = make_transport(handler)

        with pytest.raises(TransportError) as exc_info:
            await transport.send(DEFAULT_REGISTRY.require("markets"))

        error = exc_info.value
        assert error.status_code == status
        assert error.category == category
        assert error.retryable is retryable
        assert error.response_body == "nope"

    @pytest.mark.asyncio
    async def test_long_error_body_truncated(self) -> None:
        handler = Recorder(httpx.Response(502, text="x" * 5000))
        transport = make_transport(handler)

        with pytest.raises(TransportError) as exc_info:
            await transport.send(DEFAULT_REGISTRY.require("markets"))

        assert len(exc_info.value.response_body or "") == 1000

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("error", "category"),
        [
            (httpx.ConnectError("connection refused"), "network"),
            (httpx.ReadTimeout("read timed out"), "timeout"),
            (httpx.ConnectTimeout("connect timed out"), "timeout"),
        ],
    )
    async def test_request_errors(self, error: Exception, category: str) -> None:
        transport = make_transport(Recorder(error))

        with pytest.raises(TransportError) as exc_info:
            await transport.send(DEFAULT_REGISTRY.require("depth"), {"symbol": "SOL_USDC"})

        assert exc_info.value.category == category
        assert exc_info.value.retryable
        assert exc_info.value.__cause__ is error


class TestLifecycle:
    """Tests for client ownership."""

    @pytest.mark.asyncio
    async def test_injected_client_not_closed(self) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(Recorder(httpx.Response(200))))
        transport = Transport(settings=Settings(), client=client)

        await transport.aclose()

        assert not client.is_closed
        await client.aclose()

    @pytest.mark.asyncio
    async def test_owned_client_closed(self) -> None:
        transport = Transport(settings=Settings())
        transport.build_request(DEFAULT_REGISTRY.require("ping"))

        await transport.aclose()
        assert transport._client is None
        await transport.aclose()

    def test_build_request_does_not_send(self) -> None:
        handler = Recorder(httpx.Response(200))
        transport = make_transport(handler)

        request = transport.build_request(DEFAULT_REGISTRY.require("ping"))

        assert request.url == "https://api.backpack.exchange/api/v1/ping"
        assert handler.requests == []
