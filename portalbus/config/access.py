"""Config lookup for the CLI, loaded once per config file."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from portalbus.config.loader import get_config_path, load_config
from portalbus.config.schema import Config


@lru_cache(maxsize=4)
def _cached(path: Path) -> Config:
    return load_config(path)


def get_config(*, config_path: Path | None = None, force_reload: bool = False) -> Config:
    """Config from ``config_path`` (default location if omitted), cached by resolved path."""
    path = Path(config_path or get_config_path()).expanduser().resolve()
    if force_reload:
        _cached.cache_clear()
    return _cached(path)


def clear_config_cache() -> None:
    _cached.cache_clear()
