"""OAuth 2.0 Device Authorization Grant (RFC 8628).

The flow works by:
1. Requesting a device code and user code from the authorization server
2. Showing the user code and verification URL to the user
3. Polling the token endpoint until the user completes authorization, the
   server reports an error, or the polling deadline passes
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

import httpx

from ..core.config import OAuthConfig
from ..utils.errors import AuthError, AuthErrorCode
from .http import client_credentials, post_form
from .scopes import get_oauth_scopes
from .types import (
    AUTHORIZATION_PENDING,
    DEVICE_CODE_GRANT_TYPE,
    AuthResponse,
    TokenResponse,
    is_auth_response,
    is_token_success,
    normalize_auth_response,
)

logger = logging.getLogger(__name__)

POLLING_TIMEOUT_SECONDS = 10 * 60

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


async def request_device_authorization(
    client: httpx.AsyncClient, config: OAuthConfig
) -> AuthResponse:
    """Request a device code from the authorization server.

    Returns:
        The device authorization response, with ``verification_url``
        normalized to ``verification_uri``

    Raises:
        AuthError: UNEXPECTED_AUTH_GRANT_ERROR for network failures, non-2xx
            status or a non-object body; UNEXPECTED_AUTH_GRANT_RESPONSE when
            the body isn't a device authorization response
    """
    params = {"client_id": config.client_id, "scope": get_oauth_scopes(config)}
    logger.debug(f"Requesting device authorization: {config.authorization_endpoint}")

    try:
        response = await post_form(client, config.authorization_endpoint, params)
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        raise AuthError(
            "Error obtaining auth grant", AuthErrorCode.UNEXPECTED_AUTH_GRANT_ERROR, e
        ) from e

    if not response.is_success or not isinstance(data, dict):
        raise AuthError(
            f"Error obtaining auth grant. Server responded {response.status_code}",
            AuthErrorCode.UNEXPECTED_AUTH_GRANT_ERROR,
            {"status": response.status_code, "body": data},
        )

    data = normalize_auth_response(data)
    if not is_auth_response(data):
        raise AuthError(
            "Unexpected auth grant response",
            AuthErrorCode.UNEXPECTED_AUTH_GRANT_RESPONSE,
            data,
        )

    return AuthResponse.from_dict(data)


async def poll_for_token(
    client: httpx.AsyncClient,
    auth_response: AuthResponse,
    config: OAuthConfig,
    *,
    timeout: float = POLLING_TIMEOUT_SECONDS,
    clock: Clock = time.monotonic,
    sleep: Sleep = asyncio.sleep,
) -> TokenResponse:
    """Poll the token endpoint until the user authorizes the device.

    Polls every ``auth_response.interval`` seconds while the server answers
    ``authorization_pending``. Any other error ends polling immediately.

    Args:
        client: HTTP client
        auth_response: Response from request_device_authorization()
        config: OAuth config with the token endpoint and client credentials
        timeout: Deadline in seconds, measured from the first poll
        clock: Monotonic time source
        sleep: Coroutine used to wait between polls

    Returns:
        The successful token response

    Raises:
        AuthError: OAUTH_POLLING_TIMEOUT once the deadline is reached;
            UNEXPECTED_AUTH_GRANT_ERROR for any other failure
    """
    params = client_credentials(config.client_id, config.client_secret)
    params["grant_type"] = DEVICE_CODE_GRANT_TYPE
    params["device_code"] = auth_response.device_code

    start_time = clock()

    def timed_out() -> AuthError:
        return AuthError(
            "OAuth device flow timed out after 10 minutes. Please try again.",
            AuthErrorCode.OAUTH_POLLING_TIMEOUT,
        )

    while True:
        remaining = timeout - (clock() - start_time)
        if remaining <= 0:
            raise timed_out()

        try:
            response = await asyncio.wait_for(
                post_form(client, config.token_endpoint, params), remaining
            )
            data = response.json()
        except TimeoutError:
            raise timed_out() from None
        except (httpx.HTTPError, ValueError) as e:
            raise AuthError(
                "Unexpected error requesting authorization grant",
                AuthErrorCode.UNEXPECTED_AUTH_GRANT_ERROR,
                e,
            ) from e

        if is_token_success(data):
            logger.debug("Device authorization complete")
            return TokenResponse.from_dict(data)

        error = data.get("error") if isinstance(data, dict) else None
        logger.debug(f"Token poll response: status={response.status_code}, error={error}")

        if error != AUTHORIZATION_PENDING:
            raise AuthError(
                "Unexpected error requesting authorization grant",
                AuthErrorCode.UNEXPECTED_AUTH_GRANT_ERROR,
                data,
            )

        await sleep(auth_response.interval)
