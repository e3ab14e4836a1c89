"""Tests for portalbus.request.pending (the response resolver)."""

from __future__ import annotations

import asyncio
import gc

import pytest
from dbus_fast import Variant

from conftest import FakeTransport
from portalbus.request.handle_token import HandleTokenGenerator
from portalbus.request.invoker import RequestInvoker
from portalbus.request.pending import RequestState
from portalbus.request.response import REQUEST_INTERFACE, ResponseStatus
from portalbus.transport.base import SignalMessage
from portalbus.utils.exceptions import (
    ConnectionLostError,
    MalformedReplyError,
    PortalCallError,
    RequestStateError,
    TimeoutError,
)

IFACE = "org.freedesktop.portal.Example"


async def _start(transport: FakeTransport):
    invoker = RequestInvoker(transport, tokens=HandleTokenGenerator(prefix="t"))
    return await invoker.invoke(IFACE, "Do")


@pytest.mark.asyncio
async def test_success_response_resolves(transport: FakeTransport) -> None:
    pending = await _start(transport)
    transport.emit_response(pending.path, 0, {"choices": Variant("as", ["a", "b"])})
    response = await pending.await_response()
    assert response.ok
    assert response.results == {"choices": ["a", "b"]}
    assert response.path == pending.path
    assert pending.state == RequestState.RESOLVED
    assert transport.handler_count() == 0


@pytest.mark.asyncio
async def test_other_failure_is_a_normal_completion(transport: FakeTransport) -> None:
    pending = await _start(transport)
    transport.emit_response(pending.path, 2, {"ignored": Variant("s", "x")})
    response = await pending.await_response()
    assert response.status == ResponseStatus.OTHER
    assert response.results == {}
    assert pending.state == RequestState.RESOLVED


@pytest.mark.asyncio
async def test_await_response_is_cached(transport: FakeTransport) -> None:
    pending = await _start(transport)
    transport.emit_response(pending.path, 0)
    first = await pending.await_response()
    assert await pending.await_response() is first


@pytest.mark.asyncio
async def test_cancel_sends_close_and_waits_for_cancelled_response(transport: FakeTransport) -> None:
    pending = await _start(transport)
    waiter = asyncio.ensure_future(pending.await_response())
    await asyncio.sleep(0)

    await pending.cancel()
    close = transport.calls_to("Close")[0]
    assert close["path"] == pending.path
    assert close["interface"] == REQUEST_INTERFACE
    await asyncio.sleep(0)
    assert not waiter.done()

    transport.emit_response(pending.path, 1)
    response = await waiter
    assert response.status == ResponseStatus.CANCELLED
    assert pending.state == RequestState.CANCELLED


@pytest.mark.asyncio
async def test_cancel_swallows_close_failures(transport: FakeTransport) -> None:
    transport.responders["Close"] = lambda _c: PortalCallError("org.freedesktop.DBus.Error.UnknownMethod")
    pending = await _start(transport)
    await pending.cancel()
    assert pending.state == RequestState.INVOKED
    transport.emit_response(pending.path, 1)
    assert (await pending.await_response()).status == ResponseStatus.CANCELLED


@pytest.mark.asyncio
async def test_cancel_after_resolution_is_noop(transport: FakeTransport) -> None:
    pending = await _start(transport)
    transport.emit_response(pending.path, 0)
    await pending.await_response()
    await pending.cancel()
    assert transport.calls_to("Close") == []


@pytest.mark.asyncio
async def test_concurrent_requests_resolve_independently(transport: FakeTransport) -> None:
    a = await _start(transport)
    b = await _start(transport)
    assert a.path != b.path

    wait_b = asyncio.ensure_future(b.await_response())
    transport.emit_response(a.path, 0, {"who": Variant("s", "a")})
    assert (await a.await_response()).results == {"who": "a"}
    await asyncio.sleep(0)
    assert not wait_b.done()
    assert transport.handler_count(b.path) == 1

    transport.emit_response(b.path, 0, {"who": Variant("s", "b")})
    assert (await wait_b).results == {"who": "b"}


@pytest.mark.asyncio
async def test_connection_loss_fails_all_pending(transport: FakeTransport) -> None:
    a = await _start(transport)
    b = await _start(transport)
    waits = [asyncio.ensure_future(r.await_response()) for r in (a, b)]
    await asyncio.sleep(0)

    transport.notify_disconnected(EOFError("bus went away"))
    results = await asyncio.wait_for(asyncio.gather(*waits, return_exceptions=True), timeout=1)
    assert all(isinstance(r, ConnectionLostError) for r in results)
    assert a.state == RequestState.CONNECTION_LOST
    assert b.state == RequestState.CONNECTION_LOST
    with pytest.raises(ConnectionLostError):
        await a.await_response()


@pytest.mark.asyncio
async def test_malformed_response_fails_request(transport: FakeTransport) -> None:
    pending = await _start(transport)
    transport.dispatch_signal(
        SignalMessage(path=pending.path, interface=REQUEST_INTERFACE, member="Response", body=["oops"])
    )
    with pytest.raises(MalformedReplyError):
        await pending.await_response()
    assert pending.state == RequestState.FAILED
    assert transport.handler_count() == 0


@pytest.mark.asyncio
async def test_timeout_releases_and_abandons(transport: FakeTransport) -> None:
    pending = await _start(transport)
    with pytest.raises(TimeoutError):
        await pending.await_response(timeout=0.01)
    assert pending.state == RequestState.CANCELLED
    assert transport.handler_count() == 0
    with pytest.raises(RequestStateError):
        await pending.await_response()


@pytest.mark.asyncio
async def test_cancelled_waiting_task_releases_subscription(transport: FakeTransport) -> None:
    pending = await _start(transport)
    waiter = asyncio.ensure_future(pending.await_response())
    await asyncio.sleep(0)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter
    assert transport.handler_count() == 0
    await asyncio.sleep(0)
    assert transport.bus_rules == set()


@pytest.mark.asyncio
async def test_context_manager_releases(transport: FakeTransport) -> None:
    async with await _start(transport) as pending:
        path = pending.path
        assert transport.handler_count(path) == 1
    assert transport.handler_count(path) == 0
    assert pending.state == RequestState.CANCELLED
    assert transport.emit_response(path, 0) is False


@pytest.mark.asyncio
async def test_dropping_unresolved_request_releases_subscription(transport: FakeTransport) -> None:
    pending = await _start(transport)
    path = pending.path
    assert transport.handler_count(path) == 1
    del pending
    gc.collect()
    assert transport.handler_count(path) == 0
    assert transport.emit_response(path, 0) is False
    await asyncio.sleep(0)
    assert ("RemoveMatch", path) in transport.log
