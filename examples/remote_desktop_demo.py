"""Remote desktop demo: open a session, let the user pick devices, press Enter.

Run inside a desktop session with xdg-desktop-portal available:

    python examples/remote_desktop_demo.py
"""

import asyncio

from loguru import logger

from portalbus import PortalClient, WindowIdentifier
from portalbus.desktop import DeviceType, KeyState, RemoteDesktopProxy
from portalbus.utils.exceptions import PortalError, ResponseCancelledError

KEY_ENTER = 28  # evdev keycode


async def main() -> None:
    async with await PortalClient.connect() as client:
        proxy = RemoteDesktopProxy(client)
        logger.info(f"RemoteDesktop v{await proxy.version()}, devices: {await proxy.available_device_types()!r}")

        async with await proxy.create_session() as session:
            await proxy.select_devices(session, DeviceType.KEYBOARD | DeviceType.POINTER)
            selected = await proxy.start(session, WindowIdentifier())
            logger.info(f"Granted: {selected.device_types!r}")

            if DeviceType.KEYBOARD in selected.device_types:
                await proxy.notify_keyboard_keycode(session, KEY_ENTER, KeyState.PRESSED)
                await proxy.notify_keyboard_keycode(session, KEY_ENTER, KeyState.RELEASED)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except ResponseCancelledError:
        logger.warning("Dialog dismissed")
    except PortalError as e:
        logger.error(f"Portal error: {e}")
