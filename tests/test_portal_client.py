"""Tests for portalbus.portal.PortalClient over a fake transport."""

from __future__ import annotations

import asyncio

import pytest
from dbus_fast import Variant

from conftest import FakeTransport, handle_token_of, suffixing_responder
from portalbus.config.schema import Config
from portalbus.portal import PROPERTIES_INTERFACE, PortalClient
from portalbus.request.paths import predict_path
from portalbus.request.response import ResponseStatus
from portalbus.utils.exceptions import TimeoutError

IFACE = "org.freedesktop.portal.Example"


def _client(transport: FakeTransport, **portal: object) -> PortalClient:
    cfg = Config()
    cfg.tokens.prefix = "test"
    for key, value in portal.items():
        setattr(cfg.portal, key, value)
    return PortalClient(transport, config=cfg)


def _answer_later(transport: FakeTransport, status: int = 0, results: dict | None = None):
    """Broker that replies with the request path and emits the response shortly after."""

    def _respond(call):
        path = predict_path(transport.unique_name, handle_token_of(call))
        asyncio.get_running_loop().call_soon(transport.emit_response, path, status, results or {})
        return [path]

    return _respond


@pytest.mark.asyncio
async def test_request_round_trip(transport: FakeTransport) -> None:
    transport.responders["Do"] = _answer_later(transport, 0, {"answer": Variant("u", 42)})
    client = _client(transport)
    response = await client.request(IFACE, "Do")
    assert response.status == ResponseStatus.SUCCESS
    assert response.results == {"answer": 42}
    assert handle_token_of(transport.calls_to("Do")[0]).startswith("test_")
    assert transport.handler_count() == 0


@pytest.mark.asyncio
async def test_request_uses_actual_path(transport: FakeTransport) -> None:
    client = _client(transport)
    transport.responders["Do"] = suffixing_responder(transport, "_2")
    pending = await client.start_request(IFACE, "Do")
    transport.emit_response(pending.path, 1)
    response = await pending.await_response()
    assert response.status == ResponseStatus.CANCELLED
    assert pending.path.endswith("_2")


@pytest.mark.asyncio
async def test_request_applies_configured_timeout(transport: FakeTransport) -> None:
    client = _client(transport, response_timeout_seconds=0.01)
    with pytest.raises(TimeoutError):
        await client.request(IFACE, "Do")
    assert transport.handler_count() == 0


@pytest.mark.asyncio
async def test_plain_call_unwraps_reply(transport: FakeTransport) -> None:
    transport.responders["Lookup"] = lambda _c: [Variant("s", "value")]
    client = _client(transport)
    assert await client.call(IFACE, "Lookup", ["key"], signature="s") == ["value"]
    call = transport.calls_to("Lookup")[0]
    assert call["path"] == "/org/freedesktop/portal/desktop"
    assert call["body"] == ["key"]


@pytest.mark.asyncio
async def test_get_property(transport: FakeTransport) -> None:
    transport.responders["Get"] = lambda _c: [Variant("u", 2)]
    client = _client(transport)
    assert await client.get_property(IFACE, "version") == 2
    call = transport.calls_to("Get")[0]
    assert call["interface"] == PROPERTIES_INTERFACE
    assert call["body"] == [IFACE, "version"]
    assert call["signature"] == "ss"


@pytest.mark.asyncio
async def test_new_session_token_predicts_session_path(transport: FakeTransport) -> None:
    client = _client(transport)
    token, path = client.new_session_token()
    assert path == f"/org/freedesktop/portal/desktop/session/_1_42/{token}"


@pytest.mark.asyncio
async def test_close_disconnects_transport(transport: FakeTransport) -> None:
    async with _client(transport):
        pass
    assert transport.connected is False


@pytest.mark.requires_portal
@pytest.mark.asyncio
async def test_live_remote_desktop_version() -> None:
    from portalbus.desktop.remote_desktop import RemoteDesktopProxy

    async with await PortalClient.connect() as client:
        assert await RemoteDesktopProxy(client).version() >= 1
