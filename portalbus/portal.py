"""Portal client: one bus connection plus the request machinery on top of it."""

from __future__ import annotations

from typing import Any

from dbus_fast import Variant

from portalbus.config.schema import Config
from portalbus.request.handle_token import HandleTokenGenerator
from portalbus.request.invoker import RequestInvoker
from portalbus.request.paths import predict_session_path
from portalbus.request.pending import PendingRequest
from portalbus.request.response import PortalResponse, unwrap_variants
from portalbus.transport.base import BusTransport

PROPERTIES_INTERFACE = "org.freedesktop.DBus.Properties"


class PortalClient:
    """Entry point for typed wrappers.

    ``request`` covers methods that answer through a Request object; ``call``
    covers plain methods; ``get_property`` reads interface properties.
    """

    def __init__(self, transport: BusTransport, *, config: Config | None = None):
        self.config = config or Config()
        self.transport = transport
        self.tokens = HandleTokenGenerator(
            prefix=self.config.tokens.prefix,
            random_length=self.config.tokens.random_length,
        )
        self.invoker = RequestInvoker(
            transport,
            destination=self.config.portal.destination,
            object_path=self.config.portal.object_path,
            tokens=self.tokens,
            call_timeout=self.config.bus.call_timeout_seconds,
        )

    @classmethod
    async def connect(cls, config: Config | None = None) -> "PortalClient":
        from portalbus.transport.dbus import DbusFastTransport

        config = config or Config()
        transport = await DbusFastTransport.connect(
            address=config.bus.address,
            call_timeout=config.bus.call_timeout_seconds,
        )
        return cls(transport, config=config)

    async def close(self) -> None:
        await self.transport.close()

    async def __aenter__(self) -> "PortalClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def start_request(
        self,
        interface: str,
        method: str,
        args: list[Any] | None = None,
        options: dict[str, Variant] | None = None,
        *,
        signature: str = "a{sv}",
    ) -> PendingRequest:
        return await self.invoker.invoke(interface, method, args, options, signature=signature)

    async def request(
        self,
        interface: str,
        method: str,
        args: list[Any] | None = None,
        options: dict[str, Variant] | None = None,
        *,
        signature: str = "a{sv}",
        timeout: float | None = None,
    ) -> PortalResponse:
        """Issue a request-style call and wait for its response."""
        pending = await self.start_request(interface, method, args, options, signature=signature)
        async with pending:
            return await pending.await_response(
                timeout=timeout if timeout is not None else self.config.portal.response_timeout_seconds
            )

    async def call(
        self,
        interface: str,
        method: str,
        args: list[Any] | None = None,
        *,
        signature: str = "",
        path: str | None = None,
    ) -> list[Any]:
        body = await self.transport.call(
            destination=self.config.portal.destination,
            path=path or self.config.portal.object_path,
            interface=interface,
            member=method,
            signature=signature,
            body=list(args or []),
            timeout=self.config.bus.call_timeout_seconds,
        )
        return unwrap_variants(body)

    async def get_property(self, interface: str, name: str) -> Any:
        body = await self.call(PROPERTIES_INTERFACE, "Get", [interface, name], signature="ss")
        return body[0] if body else None

    def new_session_token(self) -> tuple[str, str]:
        """A fresh session handle token and the session path it predicts."""
        token = self.tokens.next_token()
        return token, predict_session_path(
            self.transport.unique_name, token, base=self.config.portal.object_path
        )
