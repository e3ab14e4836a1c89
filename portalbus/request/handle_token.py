"""Handle tokens naming pending requests and sessions."""

from __future__ import annotations

import itertools
import re
import secrets
import string
import threading

from portalbus.utils.exceptions import ValidationError

_TOKEN_RE = re.compile(r"^[A-Za-z0-9_]+$")
_ALPHABET = string.ascii_letters + string.digits


class HandleToken(str):
    """A path-segment-safe token: non-empty, ``[A-Za-z0-9_]`` only."""

    __slots__ = ()

    @classmethod
    def parse(cls, value: str) -> "HandleToken":
        if not isinstance(value, str) or not _TOKEN_RE.match(value):
            raise ValidationError(f"Invalid handle token: {value!r}", field="handle_token")
        return cls(value)


class HandleTokenGenerator:
    """Produces unique handle tokens for this process.

    Tokens look like ``<prefix>_<counter>_<random>``. The counter makes them
    unique within the process; the random part keeps two processes sharing a
    connection name scheme from colliding.
    """

    def __init__(self, prefix: str = "portalbus", random_length: int = 10):
        if prefix and not _TOKEN_RE.match(prefix):
            raise ValidationError(f"Invalid handle token prefix: {prefix!r}", field="prefix")
        if random_length < 1:
            raise ValidationError("random_length must be positive", field="random_length")
        self.prefix = prefix
        self.random_length = random_length
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def next_token(self) -> HandleToken:
        with self._lock:
            n = next(self._counter)
        suffix = "".join(secrets.choice(_ALPHABET) for _ in range(self.random_length))
        parts = [p for p in (self.prefix, str(n), suffix) if p]
        return HandleToken("_".join(parts))


_default_generator = HandleTokenGenerator()


def next_token() -> HandleToken:
    """Next token from the process-wide default generator."""
    return _default_generator.next_token()
