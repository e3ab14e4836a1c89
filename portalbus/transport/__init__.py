"""Bus transports for the portal client."""

from portalbus.transport.base import BusTransport, MatchRule, SignalMessage

__all__ = ["BusTransport", "MatchRule", "SignalMessage"]
