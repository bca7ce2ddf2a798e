"""Shared utilities for glean_auth."""

from .errors import AuthError, AuthErrorCode, ConfigurationError, GleanAuthError
from .logging_config import setup_logging

__all__ = [
    "AuthError",
    "AuthErrorCode",
    "ConfigurationError",
    "GleanAuthError",
    "setup_logging",
]
