"""Access token refresh (RFC 6749 Section 6)."""

import logging

import httpx

from ..core.config import OAuthConfig
from ..storage.token_store import Tokens
from ..utils.errors import AuthError, AuthErrorCode
from .http import client_credentials, post_form
from .types import TokenResponse, is_token_success

logger = logging.getLogger(__name__)


async def fetch_token_via_refresh(
    client: httpx.AsyncClient, tokens: Tokens, config: OAuthConfig
) -> Tokens:
    """Exchange a refresh token for new tokens.

    The returned tokens replace the old ones entirely; nothing is carried
    over from ``tokens``.

    Raises:
        AuthError: REFRESH_TOKEN_MISSING before any request when there is no
            refresh token; UNEXPECTED_ACCESS_TOKEN_RESPONSE when the request
            fails or the body isn't JSON; FETCH_TOKEN_SERVER_ERROR with the
            server's error payload as ``cause`` when the server rejects it
    """
    if tokens.refresh_token is None:
        raise AuthError(
            "Cannot refresh: no refresh token provided.",
            AuthErrorCode.REFRESH_TOKEN_MISSING,
        )

    logger.debug("Starting refresh flow")

    params = client_credentials(config.client_id, config.client_secret)
    params["grant_type"] = "refresh_token"
    params["refresh_token"] = tokens.refresh_token

    try:
        response = await post_form(client, config.token_endpoint, params)
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        raise AuthError(
            "Unexpected response fetching access token.",
            AuthErrorCode.UNEXPECTED_ACCESS_TOKEN_RESPONSE,
            e,
        ) from e

    if is_token_success(data):
        return Tokens.build_from_token_response(TokenResponse.from_dict(data))

    error = data.get("error") if isinstance(data, dict) else None
    logger.debug(f"Refresh rejected: status={response.status_code}, error={error}")
    raise AuthError(
        f"Unable to fetch token.  Server responded {response.status_code}: {error}",
        AuthErrorCode.FETCH_TOKEN_SERVER_ERROR,
        data,
    )
