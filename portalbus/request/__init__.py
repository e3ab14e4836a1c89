"""Request/response correlation for portal calls."""

from portalbus.request.handle_token import HandleToken, HandleTokenGenerator, next_token
from portalbus.request.invoker import RequestInvoker
from portalbus.request.paths import (
    PORTAL_OBJECT_PATH,
    predict_path,
    predict_session_path,
    sanitize_sender,
)
from portalbus.request.pending import PendingRequest, RequestState
from portalbus.request.response import PortalResponse, ResponseStatus
from portalbus.request.subscriber import ResponseSubscriber, Subscription

__all__ = [
    "HandleToken",
    "HandleTokenGenerator",
    "next_token",
    "RequestInvoker",
    "PORTAL_OBJECT_PATH",
    "predict_path",
    "predict_session_path",
    "sanitize_sender",
    "PendingRequest",
    "RequestState",
    "PortalResponse",
    "ResponseStatus",
    "ResponseSubscriber",
    "Subscription",
]
