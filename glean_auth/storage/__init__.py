"""Persistence for tokens and OAuth metadata."""

from .mcp_remote import McpRemoteTarget, write_mcp_remote_files
from .oauth_cache import OAuthMetadata, OAuthMetadataCache
from .token_store import Tokens, TokenStore

__all__ = [
    "McpRemoteTarget",
    "OAuthMetadata",
    "OAuthMetadataCache",
    "TokenStore",
    "Tokens",
    "write_mcp_remote_files",
]
