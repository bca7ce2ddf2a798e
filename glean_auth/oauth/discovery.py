"""OAuth configuration discovery for Glean servers.

Discovery turns a BasicConfig into an OAuthConfig in two steps:

1. OAuth Protected Resource Metadata (RFC 9728) on the Glean server gives
   the issuer and the device flow client id
2. Authorization server metadata from the issuer (OpenID Connect discovery,
   falling back to RFC 8414) gives the device authorization and token
   endpoints

Discovery makes no writes; persisting the result is up to the caller.
"""

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

import httpx

from ..core.config import GleanConfig, OAuthConfig, TokenConfig
from ..utils.errors import AuthError, AuthErrorCode, contact_admin

logger = logging.getLogger(__name__)


@dataclass
class ProtectedResourceMetadata:
    issuer: str
    client_id: str
    client_secret: str | None = None


@dataclass
class AuthorizationServerMetadata:
    device_authorization_endpoint: str
    token_endpoint: str


def _origin(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


def _parse_json_object(response: httpx.Response) -> dict[str, Any]:
    data = response.json()
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


async def fetch_protected_resource_metadata(
    client: httpx.AsyncClient, base_url: str
) -> ProtectedResourceMetadata:
    """Fetch the issuer and device flow client from protected resource metadata.

    Raises:
        AuthError: With a distinct code for network failure, non-2xx status,
            unparseable body and each missing required field
    """
    url = f"{_origin(base_url)}/.well-known/oauth-protected-resource"
    message = contact_admin("Unable to fetch OAuth protected resource metadata")

    try:
        response = await client.get(url)
        logger.debug(f"GET {url} -> {response.status_code}")
    except httpx.HTTPError as e:
        logger.error(f"Failed to fetch {url}: {e}")
        raise AuthError(message, AuthErrorCode.PROTECTED_RESOURCE_METADATA_NETWORK, e) from e

    if not response.is_success:
        raise AuthError(message, AuthErrorCode.PROTECTED_RESOURCE_METADATA_NOT_OK)

    try:
        metadata = _parse_json_object(response)
    except ValueError as e:
        raise AuthError(
            contact_admin("Unexpected OAuth protected resource metadata"),
            AuthErrorCode.PROTECTED_RESOURCE_METADATA_PARSE,
            e,
        ) from e

    auth_servers = metadata.get("authorization_servers")
    client_id = metadata.get("glean_device_flow_client_id")
    client_secret = metadata.get("glean_device_flow_client_sec")

    issuer = None
    if isinstance(auth_servers, list) and auth_servers:
        issuer = auth_servers[0]

    if not isinstance(issuer, str):
        raise AuthError(
            contact_admin(
                "OAuth protected resource metadata did not include any authorization servers"
            ),
            AuthErrorCode.PROTECTED_RESOURCE_METADATA_MISSING_AUTH_SERVERS,
        )
    if not isinstance(client_id, str):
        raise AuthError(
            contact_admin(
                "OAuth protected resource metadata did not include a device flow client id"
            ),
            AuthErrorCode.PROTECTED_RESOURCE_METADATA_MISSING_CLIENT_ID,
        )

    return ProtectedResourceMetadata(
        issuer=issuer,
        client_id=client_id,
        client_secret=client_secret if isinstance(client_secret, str) else None,
    )


async def _fetch_metadata_document(client: httpx.AsyncClient, url: str) -> httpx.Response:
    message = contact_admin("Unable to fetch OAuth authorization server metadata")
    try:
        response = await client.get(url)
        logger.debug(f"GET {url} -> {response.status_code}")
    except httpx.HTTPError as e:
        logger.error(f"Failed to fetch {url}: {e}")
        raise AuthError(message, AuthErrorCode.AUTH_SERVER_METADATA_NETWORK, e) from e

    if not response.is_success:
        raise AuthError(message, AuthErrorCode.AUTH_SERVER_METADATA_NETWORK)
    return response


async def fetch_authorization_server_metadata(
    client: httpx.AsyncClient, issuer: str
) -> AuthorizationServerMetadata:
    """Fetch the device authorization and token endpoints for an issuer.

    OpenID Connect discovery is tried first; on failure the RFC 8414
    location is used instead.

    Raises:
        AuthError: If neither document can be fetched, the body can't be
            parsed, or a required endpoint is missing
    """
    issuer_root = issuer.rstrip("/")
    try:
        response = await _fetch_metadata_document(
            client, f"{issuer_root}/.well-known/openid-configuration"
        )
    except AuthError as e:
        fallback_url = f"{issuer_root}/.well-known/oauth-authorization-server"
        logger.debug(f"Falling back to {fallback_url}: {e.code.value}")
        response = await _fetch_metadata_document(client, fallback_url)

    try:
        metadata = _parse_json_object(response)
    except ValueError as e:
        raise AuthError(
            contact_admin("Unable to fetch OAuth authorization server metadata"),
            AuthErrorCode.AUTH_SERVER_METADATA_PARSE,
            e,
        ) from e

    device_authorization_endpoint = metadata.get("device_authorization_endpoint")
    token_endpoint = metadata.get("token_endpoint")

    if not isinstance(token_endpoint, str):
        raise AuthError(
            contact_admin("OAuth authorization server metadata did not include a token endpoint"),
            AuthErrorCode.AUTH_SERVER_METADATA_MISSING_TOKEN_ENDPOINT,
        )
    if not isinstance(device_authorization_endpoint, str):
        raise AuthError(
            contact_admin(
                "OAuth authorization server metadata did not include a device "
                "authorization endpoint"
            ),
            AuthErrorCode.AUTH_SERVER_METADATA_MISSING_DEVICE_ENDPOINT,
        )

    return AuthorizationServerMetadata(
        device_authorization_endpoint=device_authorization_endpoint,
        token_endpoint=token_endpoint,
    )


async def discover_oauth_config(client: httpx.AsyncClient, config: GleanConfig) -> OAuthConfig:
    """Build a complete OAuthConfig from a basic config.

    An OAuthConfig is returned unchanged. When issuer and client id are
    already configured, the protected resource metadata request is skipped.

    Raises:
        AuthError: If called with a TokenConfig or if any discovery step fails
    """
    logger.debug("Discovering OAuth config")

    if isinstance(config, TokenConfig):
        raise AuthError(
            "[internal error] attempting OAuth flow with a Glean-issued non-OAuth token",
            AuthErrorCode.INVALID_CONFIG,
        )
    if isinstance(config, OAuthConfig):
        return config

    issuer, client_id, client_secret = config.issuer, config.client_id, config.client_secret
    if issuer is None or client_id is None:
        logger.debug("Requesting protected resource metadata")
        resource_metadata = await fetch_protected_resource_metadata(client, config.base_url)
        issuer = resource_metadata.issuer
        client_id = resource_metadata.client_id
        client_secret = resource_metadata.client_secret
    else:
        logger.debug("Using configured issuer and client id")

    server_metadata = await fetch_authorization_server_metadata(client, issuer)

    oauth_config = OAuthConfig(
        base_url=config.base_url,
        issuer=issuer,
        client_id=client_id,
        client_secret=client_secret,
        authorization_endpoint=server_metadata.device_authorization_endpoint,
        token_endpoint=server_metadata.token_endpoint,
    )
    logger.debug(
        f"Discovered OAuth config: issuer={issuer} "
        f"device_endpoint={oauth_config.authorization_endpoint} "
        f"token_endpoint={oauth_config.token_endpoint}"
    )
    return oauth_config
