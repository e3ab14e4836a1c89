"""Parent window identifiers passed to portal dialogs."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class WindowIdentifier:
    """Identifies the window a portal dialog should be transient for.

    The empty identifier lets the portal choose.
    """
    value: str = ""

    @classmethod
    def from_x11(cls, xid: int) -> "WindowIdentifier":
        return cls(f"x11:{xid:x}")

    @classmethod
    def from_wayland(cls, handle: str) -> "WindowIdentifier":
        return cls(f"wayland:{handle}")

    def __str__(self) -> str:
        return self.value
