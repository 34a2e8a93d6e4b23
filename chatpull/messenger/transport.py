"""Request port -- the single seam through which chatpull touches the network.

``RequestPort`` is the protocol every component depends on.  It performs one
HTTP call and returns the raw response body, or raises ``TransportError``.
Cancellation is the ambient asyncio/anyio cancellation of the awaiting task:
cancelling the caller's scope aborts the in-flight request.

``HttpxRequestPort`` is the default implementation on top of
``httpx.AsyncClient``.

The AJAX endpoints prefix every JSON body with a 9-byte anti-hijacking guard
(``for (;;);``); callers of those endpoints remove it with
``strip_json_guard``.  The GraphQL batch endpoint sends plain JSON.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Protocol

import httpx
from loguru import logger

from chatpull.messenger.errors import ParseError, TransportError

if TYPE_CHECKING:
    from chatpull.messenger.settings import ChatpullSettings

JSON_GUARD_LENGTH = 9


class RequestPort(Protocol):
    """Capability that performs HTTP calls and returns raw body bytes."""

    async def get(self, url: str, params: Mapping[str, str] | None = None) -> bytes:
        """GET *url* with query *params*; raise ``TransportError`` on failure."""
        ...

    async def post(self, url: str, data: Mapping[str, str] | None = None) -> bytes:
        """POST *data* as a form to *url*; raise ``TransportError`` on failure."""
        ...


def strip_json_guard(body: bytes) -> bytes:
    """Remove the ``for (;;);`` prefix from an AJAX response body."""
    if len(body) < JSON_GUARD_LENGTH:
        msg = f"response too short ({len(body)} bytes)"
        raise ParseError(msg)
    return body[JSON_GUARD_LENGTH:]


class HttpxRequestPort:
    """``RequestPort`` backed by a shared ``httpx.AsyncClient``.

    The client is created lazily and owned by the port unless one is passed
    in.  Use as an async context manager or call ``aclose()``.
    """

    def __init__(
        self,
        *,
        cookie: str | None = None,
        user_agent: str | None = None,
        referer: str | None = None,
        timeout: float = 90.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        headers: dict[str, str] = {}
        if cookie:
            headers["Cookie"] = cookie
        if user_agent:
            headers["User-Agent"] = user_agent
        if referer:
            headers["Referer"] = referer
        self._headers = headers
        self._timeout = timeout
        self._client = client
        self._own_client = client is None

    @classmethod
    def from_settings(cls, settings: ChatpullSettings) -> HttpxRequestPort:
        return cls(
            cookie=settings.cookie.get_secret_value() if settings.cookie else None,
            user_agent=settings.user_agent,
            referer=settings.base_url + "/",
            timeout=settings.request_timeout,
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
        return self._client

    async def _send(self, request: httpx.Request) -> bytes:
        client = self._get_client()
        # Query strings carry tokens; keep them out of error messages.
        target = f"{request.method} {request.url.copy_with(query=None)}"
        try:
            response = await client.send(request)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            msg = f"{target}: HTTP {e.response.status_code}"
            raise TransportError(msg) from e
        except httpx.HTTPError as e:
            logger.debug("{} failed: {!r}", target, e)
            msg = f"{target}: {type(e).__name__}: {e}"
            raise TransportError(msg) from e
        return response.content

    async def get(self, url: str, params: Mapping[str, str] | None = None) -> bytes:
        client = self._get_client()
        request = client.build_request("GET", url, params=dict(params or {}), headers=self._headers)
        return await self._send(request)

    async def post(self, url: str, data: Mapping[str, str] | None = None) -> bytes:
        client = self._get_client()
        request = client.build_request("POST", url, data=dict(data or {}), headers=self._headers)
        return await self._send(request)

    async def aclose(self) -> None:
        if self._own_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpxRequestPort:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
