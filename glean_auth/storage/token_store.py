"""OAuth token model and file-based token storage.

Tokens are stored per Glean server in the state directory. The store does
no locking: concurrent writers race and the last write wins.
"""

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, ValidationError

from .files import read_json, server_key, write_private_json

if TYPE_CHECKING:
    from ..oauth.types import TokenResponse

logger = logging.getLogger(__name__)


class Tokens(BaseModel):
    """Access/refresh token pair.

    Instances are never updated in place; a refresh produces a new value that
    replaces the stored one.
    """

    access_token: str = Field(..., description="OAuth access token")
    refresh_token: str | None = Field(None, description="OAuth refresh token")
    token_type: str = Field(default="Bearer", description="Token type")
    expires_at: datetime | None = Field(None, description="Access token expiration")

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check whether the access token has expired.

        Tokens without an expiration never expire.
        """
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at

    @classmethod
    def build_from_token_response(
        cls, response: "TokenResponse", now: datetime | None = None
    ) -> "Tokens":
        """Create tokens from a successful token endpoint response.

        Args:
            response: Parsed token endpoint success response
            now: Issue time (defaults to the current time)
        """
        expires_at = None
        if response.expires_in is not None:
            now = now or datetime.now(timezone.utc)
            expires_at = now + timedelta(seconds=response.expires_in)

        return cls(
            access_token=response.access_token,
            refresh_token=response.refresh_token,
            token_type=response.token_type or "Bearer",
            expires_at=expires_at,
        )


class TokenStore:
    """File-based token storage keyed by Glean server URL."""

    def __init__(self, storage_dir: Path):
        """Initialize token store.

        Args:
            storage_dir: Directory holding token files
        """
        self.storage_dir = Path(storage_dir)

    def _get_token_file(self, server_url: str) -> Path:
        return self.storage_dir / f"{server_key(server_url)}_tokens.json"

    def load(self, server_url: str) -> Tokens | None:
        """Load tokens for a server.

        Returns:
            Tokens if found and valid, None otherwise
        """
        data = read_json(self._get_token_file(server_url))
        if data is None:
            logger.debug(f"No saved tokens for {server_url}")
            return None

        if data.get("server_url") != server_url:
            logger.warning(f"Token file server URL mismatch for {server_url}")
            return None

        try:
            return Tokens.model_validate(data.get("tokens"))
        except ValidationError as e:
            logger.error(f"Stored tokens for {server_url} are invalid: {e}")
            return None

    def save(self, server_url: str, tokens: Tokens) -> None:
        """Save tokens for a server, replacing any previous tokens."""
        write_private_json(
            self._get_token_file(server_url),
            {"server_url": server_url, "tokens": tokens.model_dump(mode="json")},
        )
        logger.debug(f"Saved tokens for {server_url}")

    def delete(self, server_url: str) -> None:
        """Delete stored tokens for a server."""
        token_file = self._get_token_file(server_url)
        if token_file.exists():
            token_file.unlink()
            logger.debug(f"Deleted tokens for {server_url}")
