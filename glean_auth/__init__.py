"""Glean Auth - OAuth device flow credential management for Glean."""

__version__ = "0.1.0"

from .auth import (
    Authenticator,
    attempt_upgrade_config_to_oauth,
    discover_oauth_config,
    ensure_auth_token_presence,
    force_authorize,
    force_refresh_tokens,
    get_authenticator,
    setup_mcp_remote,
)
from .core.config import (
    BasicConfig,
    GleanConfig,
    OAuthConfig,
    Settings,
    TokenConfig,
    is_basic_config,
    is_glean_token_config,
    is_oauth_config,
)
from .storage import Tokens
from .utils.errors import AuthError, AuthErrorCode, ConfigurationError, GleanAuthError

__all__ = [
    "Authenticator",
    "get_authenticator",
    # Entry points
    "ensure_auth_token_presence",
    "force_authorize",
    "force_refresh_tokens",
    "attempt_upgrade_config_to_oauth",
    "discover_oauth_config",
    "setup_mcp_remote",
    # Config
    "Settings",
    "GleanConfig",
    "TokenConfig",
    "OAuthConfig",
    "BasicConfig",
    "is_glean_token_config",
    "is_oauth_config",
    "is_basic_config",
    # Tokens
    "Tokens",
    # Errors
    "AuthError",
    "AuthErrorCode",
    "ConfigurationError",
    "GleanAuthError",
]
