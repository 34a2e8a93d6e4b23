"""Tests for the httpx-backed request port."""

from __future__ import annotations

import httpx
import pytest

from chatpull.messenger.errors import TransportError
from chatpull.messenger.settings import ChatpullSettings
from chatpull.messenger.transport import HttpxRequestPort


def _port(handler) -> HttpxRequestPort:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpxRequestPort(cookie="c_user=1", user_agent="test-agent", referer="https://ref/", client=client)


async def test_get_sends_headers_and_params() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=b'for (;;);{"ok": 1}')

    async with _port(handler) as port:
        body = await port.get("https://example.test/pull", {"seq": "3", "cb": "abcd"})

    assert body == b'for (;;);{"ok": 1}'
    [request] = seen
    assert request.url.params["seq"] == "3"
    assert request.headers["Cookie"] == "c_user=1"
    assert request.headers["User-Agent"] == "test-agent"
    assert request.headers["Referer"] == "https://ref/"


async def test_post_sends_form() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=b"{}")

    async with _port(handler) as port:
        await port.post("https://example.test/api/graphqlbatch", {"queries": '{"o0": {}}', "__a": "1"})

    [request] = seen
    assert request.method == "POST"
    assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
    assert b"__a=1" in request.content


async def test_http_status_errors_become_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, content=b"bad gateway")

    async with _port(handler) as port:
        with pytest.raises(TransportError, match="502"):
            await port.get("https://example.test/pull", {"sticky_token": "secret"})


async def test_connection_errors_become_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async with _port(handler) as port:
        with pytest.raises(TransportError) as exc_info:
            await port.get("https://example.test/pull", {"sticky_token": "secret"})

    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
    assert "secret" not in str(exc_info.value)


def test_from_settings() -> None:
    settings = ChatpullSettings(_env_file=None, cookie="c_user=7", request_timeout=30)
    port = HttpxRequestPort.from_settings(settings)
    assert port._headers["Cookie"] == "c_user=7"
    assert port._headers["Referer"] == "https://www.messenger.com/"
    assert port._timeout == 30
