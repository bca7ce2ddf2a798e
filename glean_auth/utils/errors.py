"""Error types for Glean authentication."""

from enum import Enum
from typing import Any

_CONTACT_ADMIN = (
    "please contact your Glean administrator and ensure device flow authorization "
    "is configured correctly."
)


class AuthErrorCode(str, Enum):
    """Stable machine-readable codes carried by AuthError."""

    # Config misuse
    GLEAN_TOKEN_CONFIG_USED_FOR_OAUTH = "ERR_GLEAN_TOKEN_CONFIG_USED_FOR_OAUTH"
    GLEAN_TOKEN_CONFIG_USED_FOR_OAUTH_REFRESH = "ERR_GLEAN_TOKEN_CONFIG_USED_FOR_OAUTH_REFRESH"
    INVALID_CONFIG = "ERR_INVALID_CONFIG"

    # Protected resource metadata
    PROTECTED_RESOURCE_METADATA_NETWORK = "ERR_PROTECTED_RESOURCE_METADATA_NETWORK"
    PROTECTED_RESOURCE_METADATA_NOT_OK = "ERR_PROTECTED_RESOURCE_METADATA_NOT_OK"
    PROTECTED_RESOURCE_METADATA_PARSE = "ERR_PROTECTED_RESOURCE_METADATA_PARSE"
    PROTECTED_RESOURCE_METADATA_MISSING_AUTH_SERVERS = (
        "ERR_PROTECTED_RESOURCE_METADATA_MISSING_AUTH_SERVERS"
    )
    PROTECTED_RESOURCE_METADATA_MISSING_CLIENT_ID = (
        "ERR_PROTECTED_RESOURCE_METADATA_MISSING_CLIENT_ID"
    )

    # Authorization server metadata
    AUTH_SERVER_METADATA_NETWORK = "ERR_AUTH_SERVER_METADATA_NETWORK"
    AUTH_SERVER_METADATA_PARSE = "ERR_AUTH_SERVER_METADATA_PARSE"
    AUTH_SERVER_METADATA_MISSING_TOKEN_ENDPOINT = "ERR_AUTH_SERVER_METADATA_MISSING_TOKEN_ENDPOINT"
    AUTH_SERVER_METADATA_MISSING_DEVICE_ENDPOINT = (
        "ERR_AUTH_SERVER_METADATA_MISSING_DEVICE_ENDPOINT"
    )

    # Device grant and polling
    UNEXPECTED_AUTH_GRANT_ERROR = "ERR_UNEXPECTED_AUTH_GRANT_ERROR"
    UNEXPECTED_AUTH_GRANT_RESPONSE = "ERR_UNEXPECTED_AUTH_GRANT_RESPONSE"
    OAUTH_POLLING_TIMEOUT = "ERR_OAUTH_POLLING_TIMEOUT"
    UNEXPECTED_AUTHORIZATION_ERROR = "ERR_UNEXPECTED_AUTHORIZATION_ERROR"

    # Refresh
    REFRESH_TOKEN_NOT_FOUND = "ERR_REFRESH_TOKEN_NOT_FOUND"
    REFRESH_TOKEN_MISSING = "ERR_REFRESH_TOKEN_MISSING"
    UNEXPECTED_ACCESS_TOKEN_RESPONSE = "ERR_UNEXPECTED_ACCESS_TOKEN_RESPONSE"
    FETCH_TOKEN_SERVER_ERROR = "ERR_FETCH_TOKEN_SERVER_ERROR"

    # Interactive
    NO_INTERACTIVE_TERMINAL = "ERR_NO_INTERACTIVE_TERMINAL"

    # Interoperability mirror
    MISSING_OAUTH_METADATA = "ERR_MISSING_OAUTH_METADATA"
    MISSING_OAUTH_TOKENS = "ERR_MISSING_OAUTH_TOKENS"


class GleanAuthError(Exception):
    """Base exception for glean_auth errors."""

    pass


class ConfigurationError(GleanAuthError):
    """Raised when settings are missing or invalid."""

    pass


class AuthError(GleanAuthError):
    """Authentication failure with a stable error code.

    ``cause`` is either the underlying exception (also chained as
    ``__cause__``) or the raw error payload returned by the server.
    """

    def __init__(self, message: str, code: AuthErrorCode, cause: Any = None):
        super().__init__(message)
        self.code = code
        self.cause = cause
        if isinstance(cause, BaseException):
            self.__cause__ = cause


def contact_admin(summary: str) -> str:
    """Build an operator-facing message for device flow misconfiguration."""
    return f"{summary}: {_CONTACT_ADMIN}"
