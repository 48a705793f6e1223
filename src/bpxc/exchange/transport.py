"""Single-attempt HTTP transport for the Backpack API.

GET requests carry parameters in the query string; POST and DELETE carry a
JSON body. Auth headers are attached when supplied. Every failure (network,
timeout, non-2xx status) is raised as TransportError with a category tag;
retrying is the caller's concern (see bpxc.resilience).
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import httpx

from bpxc.auth.redact import redact_secrets, safe_dict_for_logging
from bpxc.auth.signing import encode_value
from bpxc.config import Settings, get_settings
from bpxc.errors import TransportError
from bpxc.exchange.registry import HttpMethod, OperationDescriptor
from bpxc.logging import get_logger

if TYPE_CHECKING:
    from bpxc.auth.signing import AuthHeaders

logger = get_logger("exchange.transport")

# Default timeouts
DEFAULT_CONNECT_TIMEOUT = 5.0

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json; charset=utf-8"

# Truncate echoed bodies in errors
MAX_ERROR_BODY = 1_000


def _status_category(status_code: int) -> str:
    if status_code == 429:
        return "429"
    if 500 <= status_code < 600:
        return "5xx"
    if 400 <= status_code < 500:
        return "4xx"
    return f"http_{status_code}"


def encode_query(params: Mapping[str, Any]) -> list[tuple[str, str]]:
    """Render params as query pairs in the order given, dropping ``None``."""
    return [(key, encode_value(value)) for key, value in params.items() if value is not None]


def encode_body(params: Mapping[str, Any]) -> str:
    """Serialize params as a compact JSON body, dropping ``None``."""
    cleaned = {key: value for key, value in params.items() if value is not None}
    return json.dumps(cleaned, separators=(",", ":"), default=encode_value)


class Transport:
    """Issues one HTTP request per call.

    Safe to share between concurrent calls; the only state is the pooled
    ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize transport.

        Args:
            settings: Client settings (uses global if not provided)
            client: Pre-built HTTP client (e.g. with a mock transport)
        """
        self._settings = settings or get_settings()
        self._timeout = httpx.Timeout(
            self._settings.http_timeout,
            connect=min(DEFAULT_CONNECT_TIMEOUT, self._settings.http_timeout),
        )
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        """Close HTTP client if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def build_request(
        self,
        descriptor: OperationDescriptor,
        params: Mapping[str, Any] | None = None,
        auth_headers: AuthHeaders | None = None,
    ) -> httpx.Request:
        """Build the HTTP request for one attempt."""
        params = params or {}
        headers = {"User-Agent": self._settings.user_agent}
        if auth_headers is not None:
            headers.update(auth_headers.as_dict())

        client = self._get_client()
        if descriptor.method == HttpMethod.GET:
            headers["Content-Type"] = FORM_CONTENT_TYPE
            return client.build_request(
                "GET",
                descriptor.url,
                params=encode_query(params) or None,
                headers=headers,
            )

        headers["Content-Type"] = JSON_CONTENT_TYPE
        return client.build_request(
            descriptor.method.value,
            descriptor.url,
            content=encode_body(params).encode("utf-8"),
            headers=headers,
        )

    async def send(
        self,
        descriptor: OperationDescriptor,
        params: Mapping[str, Any] | None = None,
        auth_headers: AuthHeaders | None = None,
    ) -> httpx.Response:
        """Send one request.

        Args:
            descriptor: Endpoint descriptor
            params: Request parameters
            auth_headers: Signed headers for private endpoints

        Returns:
            The 2xx response, body already read

        Raises:
            TransportError: On network error, timeout or non-2xx status
        """
        request = self.build_request(descriptor, params, auth_headers)
        logger.debug(
            f"{request.method} {descriptor.url}",
            extra={
                "instruction": descriptor.name,
                "headers": safe_dict_for_logging(dict(request.headers)),
                "params": safe_dict_for_logging(dict(params or {})),
            },
        )

        try:
            response = await self._get_client().send(request)
        except httpx.TimeoutException as e:
            raise TransportError(
                f"{descriptor.name} timed out: {redact_secrets(str(e))}",
                category="timeout",
            ) from e
        except httpx.RequestError as e:
            raise TransportError(
                f"{descriptor.name} request failed: {redact_secrets(str(e))}",
                category="network",
            ) from e

        if not response.is_success:
            body = response.text[:MAX_ERROR_BODY]
            raise TransportError(
                f"{descriptor.name} failed with HTTP {response.status_code}",
                status_code=response.status_code,
                response_body=body,
                category=_status_category(response.status_code),
            )

        return response
