"""Derivation of the object paths the broker uses for requests and sessions."""

from __future__ import annotations

import re

PORTAL_OBJECT_PATH = "/org/freedesktop/portal/desktop"

_UNSAFE_RE = re.compile(r"[^A-Za-z0-9_]")
_OBJECT_PATH_RE = re.compile(r"^/([A-Za-z0-9_]+(/[A-Za-z0-9_]+)*)?$")


def sanitize_sender(name: str) -> str:
    """Replace every character outside ``[A-Za-z0-9_]`` with ``_``."""
    return _UNSAFE_RE.sub("_", name)


def _build(kind: str, sender: str, token: str, base: str) -> str:
    return f"{base.rstrip('/')}/{kind}/{sanitize_sender(sender)}/{token}"


def predict_path(sender: str, token: str, base: str = PORTAL_OBJECT_PATH) -> str:
    """Request path the broker is expected to assign for ``token``.

    >>> predict_path(":1.42", "abc123")
    '/org/freedesktop/portal/desktop/request/_1_42/abc123'
    """
    return _build("request", sender, token, base)


def predict_session_path(sender: str, token: str, base: str = PORTAL_OBJECT_PATH) -> str:
    return _build("session", sender, token, base)


def is_object_path(value: object) -> bool:
    return isinstance(value, str) and bool(_OBJECT_PATH_RE.match(value))
