"""Bus transport abstraction with a per-path signal dispatch table.

Concrete transports only implement the wire side (method calls and bus match
registration). Routing of incoming signals to subscribers and fan-out of
connection loss live here, so every transport behaves the same way.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable

from loguru import logger

from portalbus.utils.exceptions import BusConnectionError

DBUS_SERVICE = "org.freedesktop.DBus"
DBUS_PATH = "/org/freedesktop/DBus"
DBUS_INTERFACE = "org.freedesktop.DBus"


@dataclass(frozen=True)
class SignalMessage:
    """An incoming signal, already decoded by the transport."""
    path: str
    interface: str
    member: str
    body: list[Any] = field(default_factory=list)
    sender: str | None = None


@dataclass(frozen=True)
class MatchRule:
    """Signal match on (path, interface, member)."""
    path: str
    interface: str
    member: str

    def to_string(self) -> str:
        return (
            f"type='signal',interface='{self.interface}',"
            f"member='{self.member}',path='{self.path}'"
        )

    def matches(self, message: SignalMessage) -> bool:
        return (
            message.path == self.path
            and message.interface == self.interface
            and message.member == self.member
        )


SignalHandler = Callable[[SignalMessage], None]
DisconnectListener = Callable[[BaseException | None], None]


class BusTransport(ABC):
    """Base class for bus connections used by the portal client."""

    def __init__(self) -> None:
        self._handlers: dict[MatchRule, list[SignalHandler]] = {}
        self._disconnect_listeners: list[DisconnectListener] = []
        self._disconnected = False
        self._disconnect_reason: BaseException | None = None
        self._background: set[asyncio.Task[Any]] = set()

    # -- wire side ---------------------------------------------------------

    @property
    @abstractmethod
    def unique_name(self) -> str:
        """The unique bus name assigned to this connection (e.g. ``:1.42``)."""

    @abstractmethod
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
        """Send a method call and return the reply body.

        Raises PortalCallError on an error reply, BusConnectionError when the
        connection is unusable and TimeoutError when no reply arrives in time.
        """

    @abstractmethod
    async def _register_rule(self, rule: MatchRule) -> None:
        """Ask the bus to route signals matching ``rule`` to this connection."""

    @abstractmethod
    async def _unregister_rule(self, rule: MatchRule) -> None:
        """Undo ``_register_rule``."""

    async def close(self) -> None:
        self.notify_disconnected(None)

    # -- dispatch table ----------------------------------------------------

    @property
    def connected(self) -> bool:
        return not self._disconnected

    async def add_match(self, rule: MatchRule, handler: SignalHandler) -> None:
        """Register ``handler`` for ``rule``; returns once the bus confirmed it."""
        if self._disconnected:
            raise BusConnectionError("bus connection is closed")
        handlers = self._handlers.setdefault(rule, [])
        first = not handlers
        handlers.append(handler)
        if not first:
            return
        try:
            await self._register_rule(rule)
        except BusConnectionError:
            self.remove_handler(rule, handler)
            raise
        except Exception as exc:
            self.remove_handler(rule, handler)
            raise BusConnectionError(f"AddMatch failed for {rule.path}: {exc}") from exc
        logger.debug(f"Match registered: {rule.to_string()}")

    def remove_handler(self, rule: MatchRule, handler: SignalHandler) -> bool:
        """Drop ``handler`` from the dispatch table.

        Returns True when ``rule`` has no handlers left and its bus
        registration should be removed.
        """
        handlers = self._handlers.get(rule)
        if not handlers or handler not in handlers:
            return False
        handlers.remove(handler)
        if handlers:
            return False
        del self._handlers[rule]
        return True

    async def remove_match(self, rule: MatchRule, handler: SignalHandler) -> None:
        if not self.remove_handler(rule, handler) or self._disconnected:
            return
        await self._unregister_quietly(rule)

    def discard_match(self, rule: MatchRule, handler: SignalHandler) -> None:
        """Synchronous variant of remove_match for cleanup outside a coroutine.

        The dispatch entry is removed immediately; the bus-side RemoveMatch is
        scheduled on the running loop when there is one.
        """
        if not self.remove_handler(rule, handler) or self._disconnected:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running loop, leaving bus match for {rule.path} to the connection")
            return
        task = loop.create_task(self._unregister_quietly(rule))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _unregister_quietly(self, rule: MatchRule) -> None:
        try:
            await self._unregister_rule(rule)
        except Exception as exc:
            logger.warning(f"RemoveMatch failed for {rule.path}: {exc}")
        else:
            logger.debug(f"Match removed: {rule.to_string()}")

    def handler_count(self, path: str | None = None) -> int:
        """Number of live handlers, optionally restricted to one object path."""
        return sum(
            len(handlers)
            for rule, handlers in self._handlers.items()
            if path is None or rule.path == path
        )

    def dispatch_signal(self, message: SignalMessage) -> bool:
        """Route ``message`` to the handlers registered for its path."""
        rule = MatchRule(message.path, message.interface, message.member)
        handlers = self._handlers.get(rule)
        if not handlers:
            return False
        for handler in list(handlers):
            try:
                handler(message)
            except Exception:
                logger.exception(f"Signal handler failed for {message.path}")
        return True

    # -- connection loss ---------------------------------------------------

    def add_disconnect_listener(self, listener: DisconnectListener) -> None:
        if self._disconnected:
            listener(self._disconnect_reason)
            return
        self._disconnect_listeners.append(listener)

    def remove_disconnect_listener(self, listener: DisconnectListener) -> None:
        if listener in self._disconnect_listeners:
            self._disconnect_listeners.remove(listener)

    def notify_disconnected(self, reason: BaseException | None = None) -> None:
        """Mark the connection closed and fail everything waiting on it."""
        if self._disconnected:
            return
        self._disconnected = True
        self._disconnect_reason = reason
        listeners, self._disconnect_listeners = self._disconnect_listeners, []
        if listeners:
            logger.warning(f"Bus connection lost with {len(listeners)} pending listener(s): {reason}")
        for listener in listeners:
            try:
                listener(reason)
            except Exception:
                logger.exception("Disconnect listener failed")
        self._handlers.clear()
