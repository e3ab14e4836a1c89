"""Single-shot subscriptions to a request's ``Response`` signal."""

from __future__ import annotations

import asyncio
from typing import Any

from loguru import logger

from portalbus.request.response import REQUEST_INTERFACE, RESPONSE_MEMBER
from portalbus.transport.base import BusTransport, MatchRule, SignalMessage
from portalbus.utils.exceptions import ConnectionLostError


def response_rule(path: str) -> MatchRule:
    return MatchRule(path=path, interface=REQUEST_INTERFACE, member=RESPONSE_MEMBER)


class Subscription:
    """A registration for one ``Response`` signal, completing a one-shot future.

    The future is fulfilled by whichever comes first: the signal on the
    subscribed path or loss of the bus connection.
    """

    def __init__(self, transport: BusTransport, path: str):
        self._transport = transport
        self.path = path
        self._rule = response_rule(path)
        # Paths whose Response is accepted; two while a retarget is in flight.
        self._paths = {path}
        self._future: asyncio.Future[list[Any]] = asyncio.get_running_loop().create_future()
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    @property
    def done(self) -> bool:
        return self._future.done()

    async def _register(self) -> None:
        await self._transport.add_match(self._rule, self._on_signal)
        self._active = True
        self._transport.add_disconnect_listener(self._on_disconnect)

    def _on_signal(self, message: SignalMessage) -> None:
        if message.path not in self._paths or self._future.done():
            return
        self._future.set_result(list(message.body))

    def _on_disconnect(self, reason: BaseException | None) -> None:
        if self._future.done():
            return
        self._future.set_exception(
            ConnectionLostError(self.path, str(reason) if reason else None)
        )

    async def retarget(self, new_path: str) -> None:
        """Move the registration to ``new_path``: new first, then drop the old."""
        old_rule = self._rule
        new_rule = response_rule(new_path)
        self._paths.add(new_path)
        try:
            await self._transport.add_match(new_rule, self._on_signal)
        except BaseException:
            self._paths.discard(new_path)
            raise
        self._rule = new_rule
        self.path = new_path
        await self._transport.remove_match(old_rule, self._on_signal)
        self._paths.discard(old_rule.path)

    async def wait(self) -> list[Any]:
        """Body of the response signal. Shielded so a timeout leaves the slot intact."""
        return await asyncio.shield(self._future)

    async def release(self) -> None:
        if not self._active:
            return
        self._active = False
        self._transport.remove_disconnect_listener(self._on_disconnect)
        await self._transport.remove_match(self._rule, self._on_signal)
        self._settle()
        logger.debug(f"Subscription released: {self.path}")

    def release_nowait(self) -> None:
        if not self._active:
            return
        self._active = False
        self._transport.remove_disconnect_listener(self._on_disconnect)
        self._transport.discard_match(self._rule, self._on_signal)
        self._settle()
        logger.debug(f"Subscription discarded: {self.path}")

    def _settle(self) -> None:
        # Keep asyncio from reporting an exception nobody will retrieve.
        if self._future.done() and not self._future.cancelled():
            self._future.exception()


class ResponseSubscriber:
    """Arms and retargets subscriptions on one transport."""

    def __init__(self, transport: BusTransport):
        self._transport = transport

    async def arm(self, path: str) -> Subscription:
        """Subscribe to ``path``; returns only after the bus confirmed the match."""
        subscription = Subscription(self._transport, path)
        await subscription._register()
        logger.debug(f"Armed response subscription on {path}")
        return subscription

    async def rearm(self, subscription: Subscription, new_path: str) -> Subscription:
        old_path = subscription.path
        await subscription.retarget(new_path)
        logger.debug(f"Rearmed response subscription {old_path} -> {new_path}")
        return subscription
