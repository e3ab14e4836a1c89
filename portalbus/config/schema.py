"""Configuration schema using Pydantic.

Single data model and defaults for the client, persisted to ~/.portalbus/config.json.
"""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BusConfig(BaseModel):
    """Bus connection settings."""
    address: str | None = None  # None uses the session bus from the environment
    call_timeout_seconds: float = 25.0  # libdbus default reply timeout


class PortalConfig(BaseModel):
    """Where the portal broker lives on the bus."""
    destination: str = "org.freedesktop.portal.Desktop"
    object_path: str = "/org/freedesktop/portal/desktop"
    response_timeout_seconds: float | None = None  # None waits for the user indefinitely


class TokenConfig(BaseModel):
    """Handle token generation."""
    prefix: str = "portalbus"
    random_length: int = Field(default=10, ge=4, le=64)


class Config(BaseSettings):
    """Root configuration for portalbus."""
    bus: BusConfig = Field(default_factory=BusConfig)
    portal: PortalConfig = Field(default_factory=PortalConfig)
    tokens: TokenConfig = Field(default_factory=TokenConfig)

    model_config = SettingsConfigDict(
        env_prefix="PORTALBUS_",
        env_nested_delimiter="__",
    )
