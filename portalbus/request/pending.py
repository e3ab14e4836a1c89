"""Pending portal requests and their resolution."""

from __future__ import annotations

import asyncio
from enum import Enum

from loguru import logger

from portalbus.request.response import REQUEST_INTERFACE, PortalResponse, ResponseStatus
from portalbus.request.subscriber import Subscription
from portalbus.transport.base import BusTransport
from portalbus.utils.exceptions import (
    ConnectionLostError,
    MalformedReplyError,
    RequestStateError,
    TimeoutError,
)


class RequestState(str, Enum):
    ARMED = "armed"
    INVOKED = "invoked"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"
    CONNECTION_LOST = "connection_lost"
    FAILED = "failed"


TERMINAL_STATES = frozenset(
    {
        RequestState.RESOLVED,
        RequestState.CANCELLED,
        RequestState.CONNECTION_LOST,
        RequestState.FAILED,
    }
)


class PendingRequest:
    """One in-flight portal request, privately owned by the task that issued it.

    Usage:
        async with await invoker.invoke(...) as request:
            response = await request.await_response()
    """

    def __init__(
        self,
        *,
        transport: BusTransport,
        subscription: Subscription,
        destination: str,
        handle_token: str,
    ):
        self._transport = transport
        self._subscription = subscription
        self.destination = destination
        self.handle_token = handle_token
        self.state = RequestState.ARMED
        self._response: PortalResponse | None = None
        self._error: Exception | None = None

    @property
    def path(self) -> str:
        return self._subscription.path

    @property
    def done(self) -> bool:
        return self.state in TERMINAL_STATES

    def _mark_invoked(self) -> None:
        if self.state == RequestState.ARMED:
            self.state = RequestState.INVOKED

    def _finish(self, state: RequestState) -> None:
        if self.state in TERMINAL_STATES:
            return
        self.state = state
        logger.debug(f"Request {self.path} -> {state.value}")

    async def await_response(self, timeout: float | None = None) -> PortalResponse:
        """Wait for the ``Response`` signal and decode it.

        A cancelled-status response is returned normally. Loss of the bus
        connection raises ConnectionLostError; ``timeout`` raises TimeoutError.
        Any exit releases the subscription.
        """
        if self._response is not None:
            return self._response
        if self._error is not None:
            raise self._error
        if self.done:
            raise RequestStateError(self.path, self.state.value)
        try:
            if timeout is None:
                body = await self._subscription.wait()
            else:
                body = await asyncio.wait_for(self._subscription.wait(), timeout=timeout)
            response = PortalResponse.from_body(body, path=self.path)
        except ConnectionLostError as exc:
            self._error = exc
            self._finish(RequestState.CONNECTION_LOST)
            raise
        except MalformedReplyError as exc:
            self._error = exc
            self._finish(RequestState.FAILED)
            raise
        except asyncio.TimeoutError as exc:
            self._finish(RequestState.CANCELLED)
            raise TimeoutError(f"response on {self.path}", timeout or 0.0) from exc
        except asyncio.CancelledError:
            self._finish(RequestState.CANCELLED)
            raise
        finally:
            self._subscription.release_nowait()
        self._response = response
        if response.status == ResponseStatus.CANCELLED:
            self._finish(RequestState.CANCELLED)
        else:
            self._finish(RequestState.RESOLVED)
        return response

    async def cancel(self) -> None:
        """Ask the broker to close the request. Best-effort, never raises.

        The resolver keeps waiting; the broker is expected to answer with a
        cancelled-status response.
        """
        if self.done:
            return
        try:
            await self._transport.call(
                destination=self.destination,
                path=self.path,
                interface=REQUEST_INTERFACE,
                member="Close",
            )
        except Exception as exc:
            logger.warning(f"Close on {self.path} failed: {exc}")
        else:
            logger.debug(f"Close sent for {self.path}")

    async def release(self) -> None:
        """Stop listening. An unresolved request becomes CANCELLED."""
        self._finish(RequestState.CANCELLED)
        await self._subscription.release()

    async def __aenter__(self) -> "PendingRequest":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.release()

    def __del__(self) -> None:
        subscription = getattr(self, "_subscription", None)
        if subscription is not None and subscription.active:
            subscription.release_nowait()

    def __repr__(self) -> str:
        return f"PendingRequest(path={self.path!r}, state={self.state.value})"
