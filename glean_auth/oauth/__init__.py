"""OAuth 2.0 device flow support for Glean.

This package provides:
- OAuth Protected Resource Metadata discovery (RFC 9728)
- Authorization server metadata discovery (OpenID Connect, RFC 8414)
- Device Authorization Grant (RFC 8628)
- Token refresh
"""

from .device_flow import POLLING_TIMEOUT_SECONDS, poll_for_token, request_device_authorization
from .discovery import (
    AuthorizationServerMetadata,
    ProtectedResourceMetadata,
    discover_oauth_config,
    fetch_authorization_server_metadata,
    fetch_protected_resource_metadata,
)
from .http import HttpClientFactory, default_http_client
from .prompt import prompt_and_open, read_stdin_line
from .refresh import fetch_token_via_refresh
from .scopes import get_oauth_scopes
from .types import AuthResponse, TokenResponse, normalize_auth_response

__all__ = [
    # Discovery
    "AuthorizationServerMetadata",
    "ProtectedResourceMetadata",
    "discover_oauth_config",
    "fetch_authorization_server_metadata",
    "fetch_protected_resource_metadata",
    # Device flow
    "POLLING_TIMEOUT_SECONDS",
    "get_oauth_scopes",
    "poll_for_token",
    "prompt_and_open",
    "read_stdin_line",
    "request_device_authorization",
    # Refresh
    "fetch_token_via_refresh",
    # HTTP
    "HttpClientFactory",
    "default_http_client",
    # Messages
    "AuthResponse",
    "TokenResponse",
    "normalize_auth_response",
]
