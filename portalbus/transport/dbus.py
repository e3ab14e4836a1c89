"""D-Bus transport backed by dbus-fast."""

from __future__ import annotations

import asyncio
from typing import Any

from dbus_fast import BusType, Message, MessageType
from dbus_fast.aio import MessageBus
from loguru import logger

from portalbus.transport.base import (
    DBUS_INTERFACE,
    DBUS_PATH,
    DBUS_SERVICE,
    BusTransport,
    MatchRule,
    SignalMessage,
)
from portalbus.utils.exceptions import (
    BusConnectionError,
    MalformedReplyError,
    PortalCallError,
    TimeoutError,
)


class DbusFastTransport(BusTransport):
    """Thin wrapper over a connected ``dbus_fast.aio.MessageBus``."""

    def __init__(self, bus: MessageBus, *, call_timeout: float | None = None):
        super().__init__()
        self._bus = bus
        self._call_timeout = call_timeout
        self._bus.add_message_handler(self._on_message)
        self._watcher = asyncio.ensure_future(self._watch_disconnect())

    @classmethod
    async def connect(
        cls,
        *,
        address: str | None = None,
        call_timeout: float | None = None,
    ) -> "DbusFastTransport":
        try:
            if address:
                bus = await MessageBus(bus_address=address).connect()
            else:
                bus = await MessageBus(bus_type=BusType.SESSION).connect()
        except Exception as exc:
            raise BusConnectionError(f"Could not connect to the session bus: {exc}") from exc
        logger.debug(f"Connected to bus as {bus.unique_name}")
        return cls(bus, call_timeout=call_timeout)

    @property
    def unique_name(self) -> str:
        name = self._bus.unique_name
        if not name:
            raise BusConnectionError("bus connection has no unique name (Hello not completed)")
        return name

    @property
    def connected(self) -> bool:
        return super().connected and bool(self._bus.connected)

    async def call(
        self,
        *,
        destination: str,
        path: str,
        interface: str,
        member: str,
        signature: str = "",
        body: list[Any] | None = None,
        timeout: float | None = None,
    ) -> list[Any]:
        if not self.connected:
            raise BusConnectionError("bus connection is closed")
        message = Message(
            destination=destination,
            path=path,
            interface=interface,
            member=member,
            signature=signature,
            body=list(body or []),
        )
        limit = timeout if timeout is not None else self._call_timeout
        try:
            if limit is None:
                reply = await self._bus.call(message)
            else:
                reply = await asyncio.wait_for(self._bus.call(message), timeout=limit)
        except asyncio.TimeoutError as exc:
            raise TimeoutError(f"{interface}.{member}", float(limit or 0)) from exc
        except (EOFError, ConnectionError, OSError) as exc:
            raise BusConnectionError(f"{interface}.{member} failed: {exc}") from exc
        if reply is None:
            raise MalformedReplyError(f"reply to {member}", None)
        if reply.message_type == MessageType.ERROR:
            text = reply.body[0] if reply.body and isinstance(reply.body[0], str) else ""
            raise PortalCallError(reply.error_name or "", text, member=member)
        return list(reply.body)

    async def _register_rule(self, rule: MatchRule) -> None:
        await self._call_bus("AddMatch", rule.to_string())

    async def _unregister_rule(self, rule: MatchRule) -> None:
        await self._call_bus("RemoveMatch", rule.to_string())

    async def _call_bus(self, member: str, rule: str) -> None:
        await self.call(
            destination=DBUS_SERVICE,
            path=DBUS_PATH,
            interface=DBUS_INTERFACE,
            member=member,
            signature="s",
            body=[rule],
        )

    def _on_message(self, message: Message) -> None:
        if message.message_type != MessageType.SIGNAL:
            return None
        self.dispatch_signal(
            SignalMessage(
                path=message.path or "",
                interface=message.interface or "",
                member=message.member or "",
                body=list(message.body),
                sender=message.sender,
            )
        )
        return None

    async def _watch_disconnect(self) -> None:
        try:
            await self._bus.wait_for_disconnect()
        except Exception as exc:
            self.notify_disconnected(exc)
            return
        self.notify_disconnected(None)

    async def close(self) -> None:
        if self._bus.connected:
            self._bus.disconnect()
        await self._watcher
