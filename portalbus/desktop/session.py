"""Portal sessions (remote desktop, screen cast, ...)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from portalbus.portal import PortalClient

SESSION_INTERFACE = "org.freedesktop.portal.Session"


class SessionProxy:
    """A session object created by a portal, addressed by its handle path."""

    def __init__(self, client: "PortalClient", path: str):
        self._client = client
        self.path = path
        self.closed = False

    async def close(self) -> None:
        if self.closed:
            return
        await self._client.call(SESSION_INTERFACE, "Close", path=self.path)
        self.closed = True
        logger.debug(f"Session closed: {self.path}")

    async def __aenter__(self) -> "SessionProxy":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"SessionProxy({self.path!r})"
