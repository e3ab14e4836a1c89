"""Decoded portal responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, TypeVar

from dbus_fast import Variant
from loguru import logger
from pydantic import BaseModel

from portalbus.utils.exceptions import (
    MalformedReplyError,
    ResponseCancelledError,
    ResponseFailedError,
)

REQUEST_INTERFACE = "org.freedesktop.portal.Request"
RESPONSE_MEMBER = "Response"

M = TypeVar("M", bound=BaseModel)


class ResponseStatus(IntEnum):
    """Status code carried by the ``Response`` signal."""
    SUCCESS = 0
    CANCELLED = 1
    OTHER = 2


def unwrap_variants(value: Any) -> Any:
    """Recursively replace ``Variant`` wrappers with their plain values."""
    if isinstance(value, Variant):
        return unwrap_variants(value.value)
    if isinstance(value, dict):
        return {k: unwrap_variants(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(unwrap_variants(v) for v in value)
    return value


@dataclass
class PortalResponse:
    """Outcome of a completed request. ``results`` only matters on success."""
    status: ResponseStatus
    results: dict[str, Any] = field(default_factory=dict)
    path: str | None = None

    @classmethod
    def from_body(cls, body: list[Any], path: str | None = None) -> "PortalResponse":
        if len(body) != 2 or not isinstance(body[0], int) or not isinstance(body[1], dict):
            raise MalformedReplyError("Response signal", body)
        code = body[0]
        try:
            status = ResponseStatus(code)
        except ValueError:
            logger.warning(f"Unknown response status {code} on {path}, treating as failure")
            status = ResponseStatus.OTHER
        results = unwrap_variants(body[1]) if status == ResponseStatus.SUCCESS else {}
        return cls(status=status, results=results, path=path)

    @property
    def ok(self) -> bool:
        return self.status == ResponseStatus.SUCCESS

    def raise_for_status(self) -> "PortalResponse":
        if self.status == ResponseStatus.CANCELLED:
            raise ResponseCancelledError(self.path)
        if self.status != ResponseStatus.SUCCESS:
            raise ResponseFailedError(self.path, int(self.status))
        return self

    def parse(self, model: type[M]) -> M:
        """Validate the results into ``model``; non-success statuses raise."""
        self.raise_for_status()
        return model.model_validate(self.results)
