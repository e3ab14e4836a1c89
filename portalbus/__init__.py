"""
portalbus - XDG desktop portal client for asyncio
"""

__version__ = "0.2.0"

from portalbus.desktop.window import WindowIdentifier
from portalbus.portal import PortalClient
from portalbus.request.handle_token import HandleToken
from portalbus.request.pending import PendingRequest, RequestState
from portalbus.request.response import PortalResponse, ResponseStatus

__all__ = [
    "__version__",
    "HandleToken",
    "PendingRequest",
    "PortalClient",
    "PortalResponse",
    "RequestState",
    "ResponseStatus",
    "WindowIdentifier",
]
