"""Cache of discovered OAuth client metadata.

Saving the result of discovery lets later authorizations and refreshes skip
the protected resource and authorization server metadata requests.
"""

import logging
from pathlib import Path

from pydantic import BaseModel, ValidationError

from ..core.config import OAuthConfig
from .files import read_json, server_key, write_private_json

logger = logging.getLogger(__name__)


class OAuthMetadata(BaseModel):
    """Device flow client metadata discovered for a Glean server."""

    base_url: str
    issuer: str
    client_id: str
    client_secret: str | None = None
    authorization_endpoint: str
    token_endpoint: str

    @classmethod
    def from_config(cls, config: OAuthConfig) -> "OAuthMetadata":
        return cls(
            base_url=config.base_url,
            issuer=config.issuer,
            client_id=config.client_id,
            client_secret=config.client_secret,
            authorization_endpoint=config.authorization_endpoint,
            token_endpoint=config.token_endpoint,
        )

    def to_config(self) -> OAuthConfig:
        return OAuthConfig(
            base_url=self.base_url,
            issuer=self.issuer,
            client_id=self.client_id,
            client_secret=self.client_secret,
            authorization_endpoint=self.authorization_endpoint,
            token_endpoint=self.token_endpoint,
        )


class OAuthMetadataCache:
    """File-based OAuth metadata cache keyed by Glean server URL."""

    def __init__(self, storage_dir: Path):
        self.storage_dir = Path(storage_dir)

    def _get_metadata_file(self, server_url: str) -> Path:
        return self.storage_dir / f"{server_key(server_url)}_oauth.json"

    def load(self, server_url: str) -> OAuthMetadata | None:
        data = read_json(self._get_metadata_file(server_url))
        if data is None:
            return None

        try:
            metadata = OAuthMetadata.model_validate(data)
        except ValidationError as e:
            logger.error(f"Cached OAuth metadata for {server_url} is invalid: {e}")
            return None

        if metadata.base_url != server_url:
            logger.warning(f"OAuth metadata server URL mismatch for {server_url}")
            return None
        return metadata

    def save(self, config: OAuthConfig) -> OAuthMetadata:
        """Persist metadata from a discovered config.

        An unset client secret is omitted from the file rather than written
        as null; an empty string is kept as is.
        """
        metadata = OAuthMetadata.from_config(config)
        write_private_json(
            self._get_metadata_file(config.base_url),
            metadata.model_dump(mode="json", exclude_none=True),
        )
        logger.debug(f"Saved OAuth metadata for {config.base_url}")
        return metadata

    def delete(self, server_url: str) -> None:
        metadata_file = self._get_metadata_file(server_url)
        if metadata_file.exists():
            metadata_file.unlink()
