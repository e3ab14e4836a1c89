"""Configuration module for portalbus."""

from portalbus.config.loader import load_config, get_config_path, save_config
from portalbus.config.schema import Config
from portalbus.config.access import get_config, clear_config_cache

__all__ = ["Config", "load_config", "save_config", "get_config_path", "get_config", "clear_config_cache"]
