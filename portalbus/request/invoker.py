"""Issuing portal calls that answer through a Request object."""

from __future__ import annotations

from typing import Any

from dbus_fast import Variant
from loguru import logger

from portalbus.request.handle_token import HandleTokenGenerator, next_token
from portalbus.request.paths import PORTAL_OBJECT_PATH, is_object_path, predict_path
from portalbus.request.pending import PendingRequest
from portalbus.request.subscriber import ResponseSubscriber
from portalbus.transport.base import BusTransport
from portalbus.utils.exceptions import MalformedReplyError, ValidationError

HANDLE_TOKEN_KEY = "handle_token"


class RequestInvoker:
    """Sends request-style portal calls and hands back a PendingRequest.

    The response subscription is armed on the predicted path before the call
    goes out, then moved to the path the broker actually returned if the two
    differ.
    """

    def __init__(
        self,
        transport: BusTransport,
        *,
        destination: str = "org.freedesktop.portal.Desktop",
        object_path: str = PORTAL_OBJECT_PATH,
        tokens: HandleTokenGenerator | None = None,
        call_timeout: float | None = None,
    ):
        self._transport = transport
        self._subscriber = ResponseSubscriber(transport)
        self.destination = destination
        self.object_path = object_path
        self._tokens = tokens
        self._call_timeout = call_timeout

    def _next_token(self) -> str:
        return self._tokens.next_token() if self._tokens else next_token()

    async def invoke(
        self,
        interface: str,
        method: str,
        args: list[Any] | None = None,
        options: dict[str, Variant] | None = None,
        *,
        signature: str = "a{sv}",
    ) -> PendingRequest:
        """Send ``interface.method(*args, options)`` and return its pending request.

        ``options`` gets the generated ``handle_token``; callers must not set it.
        """
        options = dict(options or {})
        if HANDLE_TOKEN_KEY in options:
            raise ValidationError("handle_token is assigned by the client", field=HANDLE_TOKEN_KEY)
        token = self._next_token()
        options[HANDLE_TOKEN_KEY] = Variant("s", token)
        predicted = predict_path(self._transport.unique_name, token, base=self.object_path)

        subscription = await self._subscriber.arm(predicted)
        pending = PendingRequest(
            transport=self._transport,
            subscription=subscription,
            destination=self.destination,
            handle_token=token,
        )
        try:
            reply = await self._transport.call(
                destination=self.destination,
                path=self.object_path,
                interface=interface,
                member=method,
                signature=signature,
                body=[*(args or []), options],
                timeout=self._call_timeout,
            )
            if len(reply) != 1 or not is_object_path(reply[0]):
                raise MalformedReplyError(f"reply to {interface}.{method}", reply)
            actual = reply[0]
            if actual != predicted:
                logger.debug(f"{method}: broker assigned {actual} instead of {predicted}")
                await self._subscriber.rearm(subscription, actual)
        except BaseException:
            await pending.release()
            raise
        pending._mark_invoked()
        logger.debug(f"{interface}.{method} pending on {pending.path}")
        return pending
