"""Pytest hooks and fixtures."""

import os
from typing import Any, Callable

import pytest

from portalbus.request.paths import predict_path
from portalbus.request.response import REQUEST_INTERFACE, RESPONSE_MEMBER
from portalbus.transport.base import BusTransport, MatchRule, SignalMessage


def pytest_configure(config):
    """Register custom markers (also in pyproject.toml)."""
    config.addinivalue_line(
        "markers",
        "requires_portal: talks to a real xdg-desktop-portal on the session bus",
    )


def pytest_collection_modifyitems(config, items):
    """Skip requires_portal tests unless live tests were asked for."""
    if os.environ.get("PORTALBUS_LIVE_TESTS") == "1":
        return
    skip = pytest.mark.skip(reason="Set PORTALBUS_LIVE_TESTS=1 to run against a real portal")
    for item in items:
        if "requires_portal" in item.keywords:
            item.add_marker(skip)


Responder = Callable[[dict[str, Any]], Any]


def handle_token_of(call: dict[str, Any]) -> str:
    options = call["body"][-1]
    return options["handle_token"].value


class FakeTransport(BusTransport):
    """In-memory transport: records calls and bus match registrations.

    Request-style calls answer with the predicted request path unless a
    responder for the member was installed in ``responders``.
    """

    def __init__(self, unique_name: str = ":1.42"):
        super().__init__()
        self._unique_name = unique_name
        self.calls: list[dict[str, Any]] = []
        self.log: list[tuple[str, str]] = []
        self.bus_rules: set[MatchRule] = set()
        self.responders: dict[str, Responder] = {}
        self.fail_add_match = False

    @property
    def unique_name(self) -> str:
        return self._unique_name

    async def call(
        self,
        *,
        destination,
        path,
        interface,
        member,
        signature="",
        body=None,
        timeout=None,
    ):
        call = {
            "destination": destination,
            "path": path,
            "interface": interface,
            "member": member,
            "signature": signature,
            "body": list(body or []),
        }
        self.calls.append(call)
        self.log.append(("call", member))
        responder = self.responders.get(member)
        if responder is not None:
            result = responder(call)
            if isinstance(result, BaseException):
                raise result
            return result
        body = call["body"]
        if body and isinstance(body[-1], dict) and "handle_token" in body[-1]:
            return [predict_path(self._unique_name, handle_token_of(call))]
        return []

    async def _register_rule(self, rule: MatchRule) -> None:
        if self.fail_add_match:
            raise RuntimeError("AddMatch refused")
        self.bus_rules.add(rule)
        self.log.append(("AddMatch", rule.path))

    async def _unregister_rule(self, rule: MatchRule) -> None:
        self.bus_rules.discard(rule)
        self.log.append(("RemoveMatch", rule.path))

    def emit_response(self, path: str, status: int = 0, results: dict[str, Any] | None = None) -> bool:
        return self.dispatch_signal(
            SignalMessage(
                path=path,
                interface=REQUEST_INTERFACE,
                member=RESPONSE_MEMBER,
                body=[status, results or {}],
            )
        )

    def calls_to(self, member: str) -> list[dict[str, Any]]:
        return [c for c in self.calls if c["member"] == member]


def suffixing_responder(transport: FakeTransport, suffix: str = "_1") -> Responder:
    """A broker that appends a disambiguating suffix to the request path."""

    def _respond(call: dict[str, Any]) -> list[str]:
        return [predict_path(transport.unique_name, handle_token_of(call)) + suffix]

    return _respond


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()
