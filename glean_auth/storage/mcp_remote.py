"""Credential files for the mcp-remote proxy.

mcp-remote keeps its own client info and tokens per server, in files named
``{md5(server_url)}_{name}.json``. Writing our credentials there lets it
connect without running its own authorization flow.
"""

import hashlib
import logging
from pathlib import Path
from typing import Literal
from urllib.parse import urlsplit

from .files import write_private_json
from .oauth_cache import OAuthMetadata
from .token_store import Tokens

logger = logging.getLogger(__name__)

McpRemoteTarget = Literal["agents", "default"]

# mcp-remote validates redirect_uris when reading client info. It is never
# used since no authorization code flow runs through mcp-remote.
PLACEHOLDER_REDIRECT_URI = "http://localhost:9999/cb"


def get_server_url(base_url: str, target: McpRemoteTarget) -> str:
    """URL of the Glean MCP endpoint mcp-remote connects to."""
    parts = urlsplit(base_url)
    return f"{parts.scheme}://{parts.netloc}/mcp/{target}/sse"


def get_server_url_hash(server_url: str) -> str:
    return hashlib.md5(server_url.encode()).hexdigest()


def build_client_info(metadata: OAuthMetadata) -> dict:
    client_info: dict = {
        "client_id": metadata.client_id,
        "redirect_uris": [PLACEHOLDER_REDIRECT_URI],
    }
    if metadata.client_secret:
        client_info["client_secret"] = metadata.client_secret
    return client_info


def build_token_record(tokens: Tokens) -> dict:
    """Token record for mcp-remote.

    ``expires_in`` is 1 second so mcp-remote refreshes straight away and from
    then on owns the refresh cycle.
    """
    return {
        "access_token": tokens.access_token,
        "refresh_token": tokens.refresh_token,
        "token_type": "Bearer",
        "expires_in": 1,
    }


def write_mcp_remote_files(
    config_dir: Path,
    server_url: str,
    metadata: OAuthMetadata,
    tokens: Tokens,
) -> list[Path]:
    """Write client info and tokens where mcp-remote reads them.

    Returns:
        Paths of the written files
    """
    server_hash = get_server_url_hash(server_url)
    logger.debug(f"Setting up mcp-remote for server: {server_url} hash: {server_hash}")

    client_info_path = Path(config_dir) / f"{server_hash}_client_info.json"
    tokens_path = Path(config_dir) / f"{server_hash}_tokens.json"

    write_private_json(client_info_path, build_client_info(metadata))
    write_private_json(tokens_path, build_token_record(tokens))

    return [client_info_path, tokens_path]
