"""Configuration for Glean authentication.

Settings are loaded from ``GLEAN_*`` environment variables (and an optional
``.env`` file) and resolved once into one of three config variants:

- ``TokenConfig``: a Glean-issued API token, no OAuth needed
- ``OAuthConfig``: everything required to drive the device flow
- ``BasicConfig``: only partially known, OAuth discovery must run first
"""

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..utils.errors import ConfigurationError

if TYPE_CHECKING:
    from ..storage.oauth_cache import OAuthMetadata


class Settings(BaseSettings):
    """Settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="GLEAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server
    base_url: str | None = Field(
        default=None, description="Glean backend URL, e.g. https://acme-be.glean.com/"
    )
    instance: str | None = Field(
        default=None,
        description="Glean instance name; used to derive base_url when it is not set",
    )

    # Credentials
    api_token: str | None = Field(default=None, description="Glean-issued API token")
    oauth_issuer: str | None = Field(default=None, description="OAuth issuer URL")
    oauth_client_id: str | None = Field(default=None, description="Device flow client id")
    oauth_client_secret: str | None = Field(
        default=None, description="Device flow client secret, for providers that require one"
    )

    # Storage
    state_dir: Path = Field(
        default=Path.home() / ".local" / "state" / "glean",
        description="Directory for stored tokens and cached OAuth metadata",
    )
    mcp_remote_config_dir: Path = Field(
        default=Path.home() / ".mcp-auth",
        description="Directory mcp-remote reads client info and tokens from",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str | None) -> str | None:
        """Require an http(s) URL and normalize the trailing slash."""
        if v is None:
            return v
        if not v.startswith(("https://", "http://")):
            raise ValueError("Glean base URL must start with https:// or http://")
        return v if v.endswith("/") else v + "/"

    @property
    def server_url(self) -> str:
        """The Glean backend URL; the identity tokens and metadata are keyed by."""
        if self.base_url:
            return self.base_url
        if self.instance:
            return f"https://{self.instance}-be.glean.com/"
        raise ConfigurationError(
            "Glean instance is not configured. Set GLEAN_INSTANCE or GLEAN_BASE_URL."
        )


@dataclass(frozen=True)
class TokenConfig:
    """Config using a Glean-issued API token."""

    base_url: str
    api_token: str


@dataclass(frozen=True)
class OAuthConfig:
    """Complete config for the device authorization flow."""

    base_url: str
    issuer: str
    client_id: str
    authorization_endpoint: str
    token_endpoint: str
    client_secret: str | None = None


@dataclass(frozen=True)
class BasicConfig:
    """Incomplete config; must be upgraded to OAuthConfig through discovery."""

    base_url: str
    issuer: str | None = None
    client_id: str | None = None
    client_secret: str | None = None


GleanConfig = TokenConfig | OAuthConfig | BasicConfig


def is_glean_token_config(config: GleanConfig) -> bool:
    return isinstance(config, TokenConfig)


def is_oauth_config(config: GleanConfig) -> bool:
    return isinstance(config, OAuthConfig)


def is_basic_config(config: GleanConfig) -> bool:
    return isinstance(config, BasicConfig)


def classify_config(
    settings: Settings,
    cached_metadata: "OAuthMetadata | None" = None,
) -> GleanConfig:
    """Resolve settings into exactly one config variant.

    Args:
        settings: Loaded settings
        cached_metadata: OAuth metadata saved by an earlier discovery, if any

    Returns:
        TokenConfig when an API token is set, OAuthConfig when cached metadata
        exists for this server, otherwise BasicConfig

    Raises:
        ConfigurationError: If no Glean server is configured
    """
    base_url = settings.server_url

    if settings.api_token:
        return TokenConfig(base_url=base_url, api_token=settings.api_token)

    if cached_metadata is not None and cached_metadata.base_url == base_url:
        return cached_metadata.to_config()

    return BasicConfig(
        base_url=base_url,
        issuer=settings.oauth_issuer,
        client_id=settings.oauth_client_id,
        client_secret=settings.oauth_client_secret,
    )
