"""Utility functions for portalbus."""

from portalbus.utils.exceptions import (
    PortalError,
    ValidationError,
    TimeoutError,
    BusConnectionError,
    ConnectionLostError,
    MalformedReplyError,
    PortalCallError,
    RequestStateError,
    ResponseError,
    ResponseCancelledError,
    ResponseFailedError,
    ErrorCategory,
    classify_exception,
)

__all__ = [
    "PortalError",
    "ValidationError",
    "TimeoutError",
    "BusConnectionError",
    "ConnectionLostError",
    "MalformedReplyError",
    "PortalCallError",
    "RequestStateError",
    "ResponseError",
    "ResponseCancelledError",
    "ResponseFailedError",
    "ErrorCategory",
    "classify_exception",
]
