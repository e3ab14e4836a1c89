"""Remote desktop portal: create sessions and inject input events.

Example:

    async with await PortalClient.connect() as client:
        proxy = RemoteDesktopProxy(client)
        session = await proxy.create_session()
        await proxy.select_devices(session, DeviceType.KEYBOARD | DeviceType.POINTER)
        devices = await proxy.start(session, WindowIdentifier())
        await proxy.notify_keyboard_keycode(session, 28, KeyState.PRESSED)
"""

from __future__ import annotations

from enum import IntEnum, IntFlag
from typing import Any

from dbus_fast import Variant
from loguru import logger
from pydantic import BaseModel

from portalbus.desktop.session import SessionProxy
from portalbus.desktop.window import WindowIdentifier
from portalbus.portal import PortalClient
from portalbus.request.paths import is_object_path
from portalbus.request.response import PortalResponse
from portalbus.utils.exceptions import MalformedReplyError

REMOTE_DESKTOP_INTERFACE = "org.freedesktop.portal.RemoteDesktop"


class KeyState(IntEnum):
    """The keyboard key (or pointer button) state."""
    PRESSED = 0
    RELEASED = 1


class DeviceType(IntFlag):
    """Input devices that can be remote controlled."""
    KEYBOARD = 1
    POINTER = 2
    TOUCHSCREEN = 4


class Axis(IntEnum):
    VERTICAL = 0
    HORIZONTAL = 1


class CreateSessionResult(BaseModel):
    session_handle: str


class SelectedDevices(BaseModel):
    """Response to ``Start``: the devices the user allowed."""
    devices: int = 0

    @property
    def device_types(self) -> DeviceType:
        return DeviceType(self.devices)


class RemoteDesktopProxy:
    """The interface lets sandboxed applications create remote desktop sessions."""

    def __init__(self, client: PortalClient):
        self._client = client

    async def create_session(self) -> SessionProxy:
        """Create a remote desktop session; the broker's session handle wins."""
        token, predicted = self._client.new_session_token()
        response = await self._client.request(
            REMOTE_DESKTOP_INTERFACE,
            "CreateSession",
            options={"session_handle_token": Variant("s", token)},
            signature="a{sv}",
        )
        result = response.parse(CreateSessionResult)
        if not is_object_path(result.session_handle):
            raise MalformedReplyError("session handle", result.session_handle)
        if result.session_handle != predicted:
            logger.debug(f"Session handle {result.session_handle} differs from predicted {predicted}")
        return SessionProxy(self._client, result.session_handle)

    async def select_devices(
        self,
        session: SessionProxy,
        types: DeviceType | None = None,
    ) -> PortalResponse:
        """Select input devices to remote control. Default is all."""
        options: dict[str, Variant] = {}
        if types is not None:
            options["types"] = Variant("u", int(types))
        response = await self._client.request(
            REMOTE_DESKTOP_INTERFACE,
            "SelectDevices",
            [session.path],
            options,
            signature="oa{sv}",
        )
        return response.raise_for_status()

    async def start(
        self,
        session: SessionProxy,
        parent_window: WindowIdentifier | None = None,
    ) -> SelectedDevices:
        """Start the session; typically shows a dialog letting the user pick devices."""
        response = await self._client.request(
            REMOTE_DESKTOP_INTERFACE,
            "Start",
            [session.path, str(parent_window or WindowIdentifier())],
            {},
            signature="osa{sv}",
        )
        return response.parse(SelectedDevices)

    async def _notify(self, method: str, session: SessionProxy, signature: str, *args: Any) -> None:
        await self._client.call(
            REMOTE_DESKTOP_INTERFACE,
            method,
            [session.path, {}, *args],
            signature="oa{sv}" + signature,
        )

    async def notify_keyboard_keycode(self, session: SessionProxy, keycode: int, state: KeyState) -> None:
        await self._notify("NotifyKeyboardKeycode", session, "iu", keycode, int(state))

    async def notify_keyboard_keysym(self, session: SessionProxy, keysym: int, state: KeyState) -> None:
        await self._notify("NotifyKeyboardKeysym", session, "iu", keysym, int(state))

    async def notify_touch_up(self, session: SessionProxy, slot: int) -> None:
        await self._notify("NotifyTouchUp", session, "u", slot)

    async def notify_touch_down(
        self, session: SessionProxy, stream: int, slot: int, x: float, y: float
    ) -> None:
        """Touch point appeared at (x, y) in the stream's logical coordinate space."""
        await self._notify("NotifyTouchDown", session, "uudd", stream, slot, float(x), float(y))

    async def notify_touch_motion(
        self, session: SessionProxy, stream: int, slot: int, x: float, y: float
    ) -> None:
        await self._notify("NotifyTouchMotion", session, "uudd", stream, slot, float(x), float(y))

    async def notify_pointer_motion_absolute(
        self, session: SessionProxy, stream: int, x: float, y: float
    ) -> None:
        await self._notify("NotifyPointerMotionAbsolute", session, "udd", stream, float(x), float(y))

    async def notify_pointer_motion(self, session: SessionProxy, dx: float, dy: float) -> None:
        await self._notify("NotifyPointerMotion", session, "dd", float(dx), float(dy))

    async def notify_pointer_button(self, session: SessionProxy, button: int, state: KeyState) -> None:
        """``button`` is a Linux evdev button code."""
        await self._notify("NotifyPointerButton", session, "iu", button, int(state))

    async def notify_pointer_axis_discrete(self, session: SessionProxy, axis: Axis, steps: int) -> None:
        await self._notify("NotifyPointerAxisDiscrete", session, "ui", int(axis), steps)

    async def notify_pointer_axis(self, session: SessionProxy, dx: float, dy: float) -> None:
        """Smooth-scroll axis movement, e.g. from a touchpad."""
        await self._notify("NotifyPointerAxis", session, "dd", float(dx), float(dy))

    async def available_device_types(self) -> DeviceType:
        value = await self._client.get_property(REMOTE_DESKTOP_INTERFACE, "AvailableDeviceTypes")
        return DeviceType(int(value or 0))

    async def version(self) -> int:
        return int(await self._client.get_property(REMOTE_DESKTOP_INTERFACE, "version") or 0)
