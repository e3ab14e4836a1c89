"""Typed wrappers for individual desktop portals."""

from portalbus.desktop.remote_desktop import (
    Axis,
    DeviceType,
    KeyState,
    RemoteDesktopProxy,
    SelectedDevices,
)
from portalbus.desktop.session import SessionProxy
from portalbus.desktop.window import WindowIdentifier

__all__ = [
    "Axis",
    "DeviceType",
    "KeyState",
    "RemoteDesktopProxy",
    "SelectedDevices",
    "SessionProxy",
    "WindowIdentifier",
]
