"""Authentication entry points.

``Authenticator`` sequences config resolution, discovery, the device flow,
token persistence and refresh. The module-level functions delegate to a
default instance built from environment settings.
"""

import asyncio
import logging
import sys
import webbrowser
from collections.abc import Callable
from pathlib import Path
from typing import TextIO, cast

from .core.config import (
    BasicConfig,
    GleanConfig,
    OAuthConfig,
    Settings,
    TokenConfig,
    classify_config,
)
from .oauth.device_flow import poll_for_token, request_device_authorization
from .oauth.discovery import discover_oauth_config as discover
from .oauth.http import HttpClientFactory, default_http_client
from .oauth.prompt import OpenBrowser, ReadLine, prompt_and_open, read_stdin_line
from .oauth.refresh import fetch_token_via_refresh
from .storage.mcp_remote import McpRemoteTarget, get_server_url, write_mcp_remote_files
from .storage.oauth_cache import OAuthMetadataCache
from .storage.token_store import Tokens, TokenStore
from .utils.errors import AuthError, AuthErrorCode

logger = logging.getLogger(__name__)

_USE_OAUTH_HINT = (
    "Specify GLEAN_OAUTH_ISSUER and GLEAN_OAUTH_CLIENT_ID and not GLEAN_API_TOKEN to use OAuth."
)


class Authenticator:
    """Manages the OAuth credential lifecycle for one Glean server.

    Refreshes are serialized within the process: a caller that waited on a
    refresh in progress reuses its result. Separate processes are not
    coordinated and the last one to write the token store wins.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        token_store: TokenStore | None = None,
        metadata_cache: OAuthMetadataCache | None = None,
        http_client_factory: HttpClientFactory = default_http_client,
        is_interactive: Callable[[], bool] | None = None,
        read_line: ReadLine = read_stdin_line,
        open_browser: OpenBrowser = webbrowser.open,
        output: TextIO | None = None,
    ):
        """Initialize the authenticator.

        Args:
            settings: Settings (default: loaded from the environment)
            token_store: Token storage (default: file store in settings.state_dir)
            metadata_cache: OAuth metadata cache (default: file cache in settings.state_dir)
            http_client_factory: Returns a fresh httpx.AsyncClient per operation
            is_interactive: Reports whether a user is at the terminal (default: stdin is a TTY)
            read_line: Coroutine waiting for the user to press Enter
            open_browser: Opens the verification page
            output: Stream for the device flow prompt (default: stdout)
        """
        self.settings = settings or Settings()
        self.token_store = token_store or TokenStore(self.settings.state_dir)
        self.metadata_cache = metadata_cache or OAuthMetadataCache(self.settings.state_dir)
        self.http_client_factory = http_client_factory
        self.is_interactive = is_interactive or (lambda: sys.stdin.isatty())
        self.read_line = read_line
        self.open_browser = open_browser
        self.output = output
        self._refresh_lock: asyncio.Lock | None = None
        self._refresh_lock_loop: asyncio.AbstractEventLoop | None = None

    def _get_refresh_lock(self) -> asyncio.Lock:
        """Refresh lock for the running event loop.

        A lock is bound to the loop it was first contended in, so each
        ``asyncio.run`` using this instance gets its own.
        """
        loop = asyncio.get_running_loop()
        if self._refresh_lock is None or self._refresh_lock_loop is not loop:
            self._refresh_lock = asyncio.Lock()
            self._refresh_lock_loop = loop
        return self._refresh_lock

    @property
    def server_url(self) -> str:
        return self.settings.server_url

    def load_tokens(self) -> Tokens | None:
        return self.token_store.load(self.server_url)

    async def get_config(self, discover_oauth: bool = False) -> GleanConfig:
        """Resolve the current config.

        Args:
            discover_oauth: Upgrade a BasicConfig to an OAuthConfig through
                discovery (saving the discovered metadata)
        """
        cached = self.metadata_cache.load(self.server_url)
        config = classify_config(self.settings, cached)
        if discover_oauth and isinstance(config, BasicConfig):
            config = await self.attempt_upgrade_config_to_oauth(config)
        return config

    async def ensure_auth_token_presence(self) -> bool:
        """Make sure an access token is available, authorizing or refreshing as needed.

        With a Glean token config this succeeds without any network access.
        Otherwise missing tokens trigger the device flow and expired tokens a
        refresh.

        Returns:
            True if an access token is now present. The token is not checked
            against the server, so it may still be rejected (revoked,
            unaccepted client, etc.).
        """
        logger.debug("ensure_auth_token_presence")

        config = await self.get_config()
        if isinstance(config, TokenConfig):
            return True

        tokens = self.load_tokens()
        if tokens is None:
            tokens = await self.force_authorize(config)

        if tokens is not None and tokens.is_expired():
            logger.debug("Access token expired, attempting refresh")
            await self._refresh_expired_tokens()
            tokens = self.load_tokens()

        return tokens is not None

    async def force_authorize(self, config: GleanConfig | None = None) -> Tokens:
        """Run the device flow and save the resulting tokens.

        A missing or basic config is resolved with discovery first.

        Raises:
            AuthError: If config is a Glean token config or authorization fails
        """
        if config is None or isinstance(config, BasicConfig):
            config = await self.get_config(discover_oauth=True)

        if isinstance(config, TokenConfig):
            raise AuthError(
                "Cannot get OAuth access token when using glean-token configuration.  "
                + _USE_OAUTH_HINT,
                AuthErrorCode.GLEAN_TOKEN_CONFIG_USED_FOR_OAUTH,
            )

        tokens = await self._authorize(config)
        self.token_store.save(self.server_url, tokens)
        return tokens

    async def force_refresh_tokens(self) -> Tokens:
        """Refresh the stored tokens and save the result.

        Raises:
            AuthError: If config is a Glean token config, no tokens are
                stored, or the refresh fails
        """
        logger.debug("force_refresh_tokens")
        async with self._get_refresh_lock():
            return await self._refresh()

    async def attempt_upgrade_config_to_oauth(
        self, config: GleanConfig
    ) -> TokenConfig | OAuthConfig:
        """Upgrade a config to OAuth through discovery and cache the metadata.

        Token configs are returned unchanged.
        """
        if isinstance(config, TokenConfig):
            return config

        oauth_config = await self.discover_oauth_config(config)
        self.metadata_cache.save(oauth_config)
        return oauth_config

    async def discover_oauth_config(self, config: GleanConfig | None = None) -> OAuthConfig:
        """Discover the OAuth config for ``config`` (default: the current config)."""
        if config is None:
            config = await self.get_config()
        async with self.http_client_factory() as client:
            return await discover(client, config)

    async def setup_mcp_remote(self, target: McpRemoteTarget = "default") -> list[Path]:
        """Copy client info and tokens to where mcp-remote reads them.

        Must be called after a successful authentication. The copied access
        token is marked as expiring after 1 second, so mcp-remote refreshes
        it immediately and takes over refreshing until the refresh token
        expires, at which point the user must authorize again.

        Returns:
            Paths of the written files
        """
        config = await self.get_config()
        if isinstance(config, TokenConfig):
            raise AuthError(
                "Cannot setup MCP remote with Glean token configuration. "
                "Please use OAuth configuration instead.",
                AuthErrorCode.GLEAN_TOKEN_CONFIG_USED_FOR_OAUTH,
            )

        metadata = self.metadata_cache.load(self.server_url)
        if metadata is None:
            raise AuthError(
                "Missing OAuth metadata required for MCP remote setup. "
                "Please authenticate first using OAuth.",
                AuthErrorCode.MISSING_OAUTH_METADATA,
            )

        tokens = self.load_tokens()
        if tokens is None:
            raise AuthError(
                "Missing OAuth tokens required for MCP remote setup. "
                "Please authenticate first using OAuth.",
                AuthErrorCode.MISSING_OAUTH_TOKENS,
            )

        server_url = get_server_url(config.base_url, target)
        return write_mcp_remote_files(
            self.settings.mcp_remote_config_dir, server_url, metadata, tokens
        )

    async def _refresh_expired_tokens(self) -> None:
        async with self._get_refresh_lock():
            tokens = self.load_tokens()
            if tokens is not None and not tokens.is_expired():
                logger.debug("Tokens were refreshed while waiting; skipping refresh")
                return
            await self._refresh()

    async def _refresh(self) -> Tokens:
        config = await self.get_config(discover_oauth=True)
        if isinstance(config, TokenConfig):
            raise AuthError(
                "Cannot refresh OAuth access token when using glean-token configuration.  "
                + _USE_OAUTH_HINT,
                AuthErrorCode.GLEAN_TOKEN_CONFIG_USED_FOR_OAUTH_REFRESH,
            )
        config = cast(OAuthConfig, config)

        tokens = self.load_tokens()
        if tokens is None:
            raise AuthError(
                "Cannot refresh: unable to locate refresh token.",
                AuthErrorCode.REFRESH_TOKEN_NOT_FOUND,
            )

        async with self.http_client_factory() as client:
            tokens = await fetch_token_via_refresh(client, tokens, config)

        self.token_store.save(self.server_url, tokens)
        return tokens

    async def _authorize(self, config: OAuthConfig) -> Tokens:
        """Run the device flow: request a code, then poll while prompting the user.

        Polling decides the outcome. The prompt runs as a sibling task and is
        always cancelled and awaited before this returns or raises.
        """
        logger.debug("Starting OAuth authorization flow")

        if not self.is_interactive():
            raise AuthError(
                "OAuth device authorization flow requires an interactive terminal.",
                AuthErrorCode.NO_INTERACTIVE_TERMINAL,
            )

        cancelled = asyncio.Event()
        prompt_task: asyncio.Task | None = None
        try:
            async with self.http_client_factory() as client:
                auth_response = await request_device_authorization(client, config)
                prompt_task = asyncio.create_task(
                    prompt_and_open(
                        auth_response,
                        cancelled,
                        read_line=self.read_line,
                        open_browser=self.open_browser,
                        output=self.output,
                    )
                )
                token_response = await poll_for_token(client, auth_response, config)
        except AuthError:
            raise
        except Exception as e:
            raise AuthError(
                "Unexpected error obtaining authorization token",
                AuthErrorCode.UNEXPECTED_AUTHORIZATION_ERROR,
                e,
            ) from e
        finally:
            cancelled.set()
            if prompt_task is not None:
                await prompt_task

        return Tokens.build_from_token_response(token_response)


_default_authenticator: Authenticator | None = None


def get_authenticator() -> Authenticator:
    """Return the shared Authenticator, creating it from environment settings."""
    global _default_authenticator
    if _default_authenticator is None:
        _default_authenticator = Authenticator()
    return _default_authenticator


async def ensure_auth_token_presence() -> bool:
    return await get_authenticator().ensure_auth_token_presence()


async def force_authorize(config: GleanConfig | None = None) -> Tokens:
    return await get_authenticator().force_authorize(config)


async def force_refresh_tokens() -> Tokens:
    return await get_authenticator().force_refresh_tokens()


async def attempt_upgrade_config_to_oauth(config: GleanConfig) -> TokenConfig | OAuthConfig:
    return await get_authenticator().attempt_upgrade_config_to_oauth(config)


async def discover_oauth_config(config: GleanConfig | None = None) -> OAuthConfig:
    return await get_authenticator().discover_oauth_config(config)


async def setup_mcp_remote(target: McpRemoteTarget = "default") -> list[Path]:
    return await get_authenticator().setup_mcp_remote(target)
