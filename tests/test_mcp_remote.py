"""Tests for writing mcp-remote credential files."""

import hashlib
import json
import stat

from glean_auth.core.config import OAuthConfig
from glean_auth.storage.mcp_remote import (
    PLACEHOLDER_REDIRECT_URI,
    build_client_info,
    get_server_url,
    get_server_url_hash,
    write_mcp_remote_files,
)
from glean_auth.storage.oauth_cache import OAuthMetadata
from glean_auth.storage.token_store import Tokens

from conftest import BASE_URL


class TestServerUrl:
    """Tests for the mcp-remote server URL and its hash."""

    def test_server_url(self):
        assert get_server_url(BASE_URL, "default") == "https://acme-be.glean.com/mcp/default/sse"
        assert get_server_url(BASE_URL, "agents") == "https://acme-be.glean.com/mcp/agents/sse"

    def test_server_url_ignores_path(self):
        """Test only the origin of the base URL is used."""
        url = get_server_url("https://acme-be.glean.com/rest/api/v1/", "default")
        assert url == "https://acme-be.glean.com/mcp/default/sse"

    def test_hash_is_md5(self):
        url = "https://acme-be.glean.com/mcp/default/sse"
        assert get_server_url_hash(url) == hashlib.md5(url.encode()).hexdigest()


class TestClientInfo:
    """Tests for build_client_info."""

    def test_public_client(self, oauth_config: OAuthConfig):
        info = build_client_info(OAuthMetadata.from_config(oauth_config))
        assert info == {
            "client_id": "device-client",
            "redirect_uris": [PLACEHOLDER_REDIRECT_URI],
        }

    def test_client_secret_included(self, oauth_config: OAuthConfig):
        metadata = OAuthMetadata.from_config(oauth_config).model_copy(
            update={"client_secret": "s3cret"}
        )
        assert build_client_info(metadata)["client_secret"] == "s3cret"


class TestWriteMcpRemoteFiles:
    """Tests for write_mcp_remote_files."""

    def test_writes_client_info_and_tokens(
        self, tmp_path, oauth_config: OAuthConfig, valid_tokens: Tokens
    ):
        """Test both files are written under the server URL hash."""
        server_url = get_server_url(BASE_URL, "default")
        server_hash = get_server_url_hash(server_url)

        client_info_path, tokens_path = write_mcp_remote_files(
            tmp_path / "mcp-auth",
            server_url,
            OAuthMetadata.from_config(oauth_config),
            valid_tokens,
        )

        assert client_info_path.name == f"{server_hash}_client_info.json"
        assert tokens_path.name == f"{server_hash}_tokens.json"

        client_info = json.loads(client_info_path.read_text())
        assert client_info["client_id"] == "device-client"

        # Expires immediately so mcp-remote refreshes on first use
        assert json.loads(tokens_path.read_text()) == {
            "access_token": "access-token-valid",
            "refresh_token": "refresh-token-valid",
            "token_type": "Bearer",
            "expires_in": 1,
        }

    def test_files_are_private(self, tmp_path, oauth_config: OAuthConfig, valid_tokens: Tokens):
        paths = write_mcp_remote_files(
            tmp_path,
            get_server_url(BASE_URL, "agents"),
            OAuthMetadata.from_config(oauth_config),
            valid_tokens,
        )

        for path in paths:
            assert stat.S_IMODE(path.stat().st_mode) == 0o600
