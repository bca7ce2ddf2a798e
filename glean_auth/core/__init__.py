"""Core configuration for glean_auth."""

from .config import (
    BasicConfig,
    GleanConfig,
    OAuthConfig,
    Settings,
    TokenConfig,
    classify_config,
    is_basic_config,
    is_glean_token_config,
    is_oauth_config,
)

__all__ = [
    "BasicConfig",
    "GleanConfig",
    "OAuthConfig",
    "Settings",
    "TokenConfig",
    "classify_config",
    "is_basic_config",
    "is_glean_token_config",
    "is_oauth_config",
]
