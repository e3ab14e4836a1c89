"""
Exception hierarchy and error classification for portalbus.

Provides:
- Custom exception classes with error codes
- Error categorization (retryable, fatal, permission, ...)
- Mapping of D-Bus error names onto categories
- classify_exception() for callers that want a uniform view
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Error categories for classification."""
    RECOVERABLE = "recoverable"
    RETRYABLE = "retryable"
    FATAL = "fatal"
    VALIDATION = "validation"
    NOT_SUPPORTED = "not_supported"
    PERMISSION = "permission"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


class PortalError(Exception):
    """Base exception for all portalbus errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        category: ErrorCategory = ErrorCategory.FATAL,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "category": self.category.value,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class ValidationError(PortalError):
    """Input validation error."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", category=ErrorCategory.VALIDATION, details=details)


class TimeoutError(PortalError):
    """Operation timeout error."""

    def __init__(self, operation: str, timeout_seconds: float):
        super().__init__(
            f"Operation '{operation}' timed out after {timeout_seconds}s",
            code="TIMEOUT",
            category=ErrorCategory.TIMEOUT,
            details={"operation": operation, "timeout_seconds": timeout_seconds},
        )


class BusConnectionError(PortalError):
    """The bus connection failed or refused a registration."""

    def __init__(self, message: str, code: str = "BUS_CONNECTION_ERROR"):
        super().__init__(message, code=code, category=ErrorCategory.RETRYABLE)


class ConnectionLostError(BusConnectionError):
    """The bus connection closed while a request was still pending."""

    def __init__(self, path: str | None = None, reason: str | None = None):
        message = "bus connection lost"
        if path:
            message += f" while waiting on {path}"
        if reason:
            message += f": {reason}"
        super().__init__(message, code="CONNECTION_LOST")
        self.details = {"path": path, "reason": reason}


class MalformedReplyError(PortalError):
    """A reply or signal body did not have the expected shape."""

    def __init__(self, what: str, body: Any = None):
        super().__init__(
            f"Malformed {what}: {body!r}",
            code="MALFORMED_REPLY",
            category=ErrorCategory.FATAL,
            details={"what": what},
        )


# D-Bus error name -> category. Matched on the last dotted component so both
# org.freedesktop.portal.Error.* and org.freedesktop.DBus.Error.* are covered.
_CALL_ERROR_CATEGORIES: dict[str, ErrorCategory] = {
    "NotAllowed": ErrorCategory.PERMISSION,
    "AccessDenied": ErrorCategory.PERMISSION,
    "InvalidArgument": ErrorCategory.VALIDATION,
    "InvalidArgs": ErrorCategory.VALIDATION,
    "NotFound": ErrorCategory.VALIDATION,
    "UnknownMethod": ErrorCategory.NOT_SUPPORTED,
    "UnknownInterface": ErrorCategory.NOT_SUPPORTED,
    "UnknownObject": ErrorCategory.NOT_SUPPORTED,
    "UnknownProperty": ErrorCategory.NOT_SUPPORTED,
    "ServiceUnknown": ErrorCategory.NOT_SUPPORTED,
    "NotSupported": ErrorCategory.NOT_SUPPORTED,
    "NoReply": ErrorCategory.TIMEOUT,
    "Timeout": ErrorCategory.TIMEOUT,
    "Cancelled": ErrorCategory.CANCELLED,
}


class PortalCallError(PortalError):
    """The broker rejected the method call itself (an error reply)."""

    def __init__(self, error_name: str, message: str = "", *, member: str | None = None):
        short = error_name.rsplit(".", 1)[-1] if error_name else ""
        category = _CALL_ERROR_CATEGORIES.get(short, ErrorCategory.FATAL)
        text = message or error_name or "call failed"
        if member:
            text = f"{member}: {text}"
        super().__init__(
            text,
            code="PORTAL_CALL_ERROR",
            category=category,
            details={"error_name": error_name, "member": member},
        )
        self.error_name = error_name


class RequestStateError(PortalError):
    """A pending request was used after it reached a terminal state."""

    def __init__(self, path: str, state: str):
        super().__init__(
            f"Request {path} is {state}",
            code="REQUEST_STATE",
            category=ErrorCategory.FATAL,
            details={"path": path, "state": state},
        )


class ResponseError(PortalError):
    """Base for non-success portal responses, raised by typed wrappers."""


class ResponseCancelledError(ResponseError):
    """The user dismissed the portal interaction."""

    def __init__(self, path: str | None = None):
        super().__init__(
            "Portal request was cancelled by the user",
            code="RESPONSE_CANCELLED",
            category=ErrorCategory.CANCELLED,
            details={"path": path},
        )


class ResponseFailedError(ResponseError):
    """The portal interaction ended in some other way."""

    def __init__(self, path: str | None = None, status: int | None = None):
        super().__init__(
            "Portal request failed",
            code="RESPONSE_FAILED",
            category=ErrorCategory.FATAL,
            details={"path": path, "status": status},
        )


def classify_exception(exc: Exception) -> tuple[str, ErrorCategory, bool]:
    """
    Classify an exception and return (error_code, category, should_retry).

    Returns:
        Tuple of (error_code, category, should_retry)
    """
    if isinstance(exc, PortalError):
        return exc.code, exc.category, exc.category == ErrorCategory.RETRYABLE

    if isinstance(exc, asyncio.TimeoutError):
        return "TIMEOUT", ErrorCategory.TIMEOUT, True

    if isinstance(exc, (ConnectionError, EOFError)):
        return "CONNECTION_ERROR", ErrorCategory.RETRYABLE, True

    if isinstance(exc, (ValueError, TypeError, KeyError)):
        return "INVALID_VALUE", ErrorCategory.VALIDATION, False

    return "INTERNAL_ERROR", ErrorCategory.FATAL, False
