"""Pytest configuration and fixtures for glean_auth tests."""

import asyncio
import io
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import respx

from glean_auth.auth import Authenticator
from glean_auth.core.config import BasicConfig, OAuthConfig, Settings
from glean_auth.oauth.types import AuthResponse
from glean_auth.storage.oauth_cache import OAuthMetadataCache
from glean_auth.storage.token_store import Tokens, TokenStore

BASE_URL = "https://acme-be.glean.com/"
ISSUER = "https://acme.okta.com"
DEVICE_ENDPOINT = "https://acme.okta.com/oauth2/v1/device/authorize"
TOKEN_ENDPOINT = "https://acme.okta.com/oauth2/v1/token"


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.now += seconds


async def wait_forever() -> str:
    """read_line stand-in for a user who never presses Enter."""
    await asyncio.Event().wait()
    return ""


@pytest.fixture(autouse=True)
def clean_glean_env(monkeypatch):
    """Keep GLEAN_* variables from the outer environment out of the tests."""
    import os

    for key in list(os.environ):
        if key.upper().startswith("GLEAN_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def router():
    """Mock all httpx traffic."""
    with respx.mock(assert_all_called=False) as mock:
        yield mock


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        base_url=BASE_URL,
        state_dir=tmp_path / "state",
        mcp_remote_config_dir=tmp_path / "mcp-auth",
        _env_file=None,
    )


@pytest.fixture
def token_settings(tmp_path: Path) -> Settings:
    return Settings(
        base_url=BASE_URL,
        api_token="glean-api-token",
        state_dir=tmp_path / "state",
        _env_file=None,
    )


@pytest.fixture
def oauth_config() -> OAuthConfig:
    return OAuthConfig(
        base_url=BASE_URL,
        issuer=ISSUER,
        client_id="device-client",
        authorization_endpoint=DEVICE_ENDPOINT,
        token_endpoint=TOKEN_ENDPOINT,
    )


@pytest.fixture
def basic_config() -> BasicConfig:
    return BasicConfig(base_url=BASE_URL)


@pytest.fixture
def auth_response() -> AuthResponse:
    return AuthResponse(
        device_code="device-code-123",
        user_code="ABCD-EFGH",
        verification_uri="https://acme.okta.com/activate",
        expires_in=600,
        interval=5,
    )


@pytest.fixture
def token_store(settings: Settings) -> TokenStore:
    return TokenStore(settings.state_dir)


@pytest.fixture
def metadata_cache(settings: Settings) -> OAuthMetadataCache:
    return OAuthMetadataCache(settings.state_dir)


@pytest.fixture
def valid_tokens() -> Tokens:
    return Tokens(
        access_token="access-token-valid",
        refresh_token="refresh-token-valid",
        expires_at=datetime.now(UTC) + timedelta(hours=1),
    )


@pytest.fixture
def expired_tokens() -> Tokens:
    return Tokens(
        access_token="access-token-expired",
        refresh_token="refresh-token-expired",
        expires_at=datetime.now(UTC) - timedelta(hours=1),
    )


@pytest.fixture
def open_browser() -> MagicMock:
    return MagicMock()


@pytest.fixture
def authenticator(settings: Settings, open_browser: MagicMock) -> Authenticator:
    """Authenticator on an interactive terminal whose user never presses Enter."""
    return Authenticator(
        settings,
        is_interactive=lambda: True,
        read_line=wait_forever,
        open_browser=open_browser,
        output=io.StringIO(),
    )
