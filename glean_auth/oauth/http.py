"""HTTP plumbing shared by the OAuth modules.

Every network call takes an ``httpx.AsyncClient`` so callers (and tests)
control the transport.
"""

import logging
from collections.abc import Callable

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

HttpClientFactory = Callable[[], httpx.AsyncClient]


def default_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=DEFAULT_TIMEOUT,
        headers={"Accept": "application/json"},
    )


async def post_form(
    client: httpx.AsyncClient,
    url: str,
    params: dict[str, str],
) -> httpx.Response:
    """POST url-form-encoded ``params`` and return the raw response."""
    response = await client.post(
        url,
        data=params,
        headers={
            "Accept": "application/json",
            "Content-Type": "application/x-www-form-urlencoded",
        },
    )
    logger.debug(f"POST {url} -> {response.status_code} {response.reason_phrase}")
    return response


def client_credentials(client_id: str, client_secret: str | None) -> dict[str, str]:
    """Form fields identifying the OAuth client.

    Public clients cannot keep secrets, but some providers issue and require
    one anyway, so it is sent whenever configured.
    """
    params = {"client_id": client_id}
    if isinstance(client_secret, str):
        params["client_secret"] = client_secret
    return params
