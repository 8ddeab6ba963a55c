"""Async HTTP transport for the Intercom REST API.

Architectural role:
    Executes single JSON requests against Intercom and converts every failure into
    `UpstreamError`, so the resolver/adapter layers only see one error type.

Request flow:
    `contacts` / `conversations` -> `IntercomClient.request(...)` -> httpx ->
    parsed JSON body.

Retry behavior:
    No retry loop is implemented. Each call is attempted once; retry policy belongs
    to the caller. Timeouts are treated like any other upstream failure.

Testing seam:
    `set_transport` overrides the httpx transport used by newly built clients.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from app.core.errors import ConfigurationError, UpstreamError
from app.intercom.provider_config import (
    INTERCOM_API_URL,
    INTERCOM_API_VERSION,
    INTERCOM_TIMEOUT_SECONDS,
    load_access_token,
)


logger = logging.getLogger(__name__)

_DEFAULT_TRANSPORT: httpx.AsyncBaseTransport | None = None


def set_transport(transport: httpx.AsyncBaseTransport | None) -> None:
    """Override or clear the httpx transport used by `build_client`."""
    global _DEFAULT_TRANSPORT
    _DEFAULT_TRANSPORT = transport


class IntercomClient:
    """Thin bearer-token JSON client bound to one access token."""

    def __init__(
        self,
        access_token: str,
        base_url: str = INTERCOM_API_URL,
        api_version: str = INTERCOM_API_VERSION,
        timeout_seconds: float = INTERCOM_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not access_token:
            raise ConfigurationError("INTERCOM_ACCESS_TOKEN is not configured")
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.transport = transport
        self.headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Intercom-Version": api_version,
        }

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json_body: dict[str, Any] | None = None) -> Any:
        return await self.request("POST", path, json_body=json_body)

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> Any:
        """Execute one request and return the parsed JSON body.

        Args:
            method: HTTP method.
            path: Provider path beginning with `/`.
            params: Optional query parameters.
            json_body: Optional JSON body.

        Returns:
            Parsed JSON payload, or an empty dict for empty 2xx bodies.

        Raises:
            UpstreamError: Non-2xx status (`status` set) or transport failure
                (`status=0`), including timeouts.
        """
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                headers=self.headers,
                transport=self.transport,
            ) as client:
                response = await client.request(method, url, params=params, json=json_body)
            response.raise_for_status()

        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.warning("Intercom %s %s failed with status %s", method, path, status)
            raise UpstreamError(status, exc.response.text) from exc

        except httpx.RequestError as exc:
            logger.warning("Intercom %s %s transport error: %s", method, path, exc)
            raise UpstreamError(0, str(exc), f"Intercom request failed: {exc}") from exc

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError(
                response.status_code,
                response.text,
                "Intercom returned a non-JSON response",
            ) from exc


def build_client() -> IntercomClient:
    """Build a client from the current configuration.

    The credential is re-read on every call.

    Raises:
        ConfigurationError: If no access token is configured.
    """
    token = load_access_token()
    if not token:
        raise ConfigurationError("INTERCOM_ACCESS_TOKEN is not configured")
    return IntercomClient(token, transport=_DEFAULT_TRANSPORT)
