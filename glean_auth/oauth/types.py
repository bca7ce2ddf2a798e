"""Device flow protocol messages (RFC 8628, RFC 6749 Section 5)."""

from dataclasses import dataclass
from typing import Any

# RFC 8628 grant type URN
DEVICE_CODE_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:device_code"

AUTHORIZATION_PENDING = "authorization_pending"

# RFC 8628 Section 3.2: clients must use 5 seconds when no interval is given
DEFAULT_POLL_INTERVAL = 5


@dataclass
class AuthResponse:
    """Device authorization response."""

    device_code: str
    user_code: str
    verification_uri: str
    expires_in: int
    interval: int = DEFAULT_POLL_INTERVAL
    verification_uri_complete: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AuthResponse":
        interval = data.get("interval")
        return cls(
            device_code=data["device_code"],
            user_code=data["user_code"],
            verification_uri=data["verification_uri"],
            expires_in=data["expires_in"],
            interval=DEFAULT_POLL_INTERVAL if interval is None else interval,
            verification_uri_complete=data.get("verification_uri_complete"),
        )


@dataclass
class TokenResponse:
    """Successful token endpoint response."""

    access_token: str
    token_type: str = "Bearer"
    refresh_token: str | None = None
    expires_in: int | None = None
    scope: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TokenResponse":
        return cls(
            access_token=data["access_token"],
            token_type=data.get("token_type", "Bearer"),
            refresh_token=data.get("refresh_token"),
            expires_in=data.get("expires_in"),
            scope=data.get("scope"),
        )


def is_token_success(data: Any) -> bool:
    """Token responses carry ``access_token``; error responses carry ``error``."""
    return isinstance(data, dict) and isinstance(data.get("access_token"), str)


def is_auth_response(data: Any) -> bool:
    if not isinstance(data, dict):
        return False
    for key in ("device_code", "user_code", "verification_uri"):
        if not isinstance(data.get(key), str):
            return False
    if not isinstance(data.get("expires_in"), int):
        return False
    interval = data.get("interval")
    return interval is None or isinstance(interval, int)


def is_auth_response_with_url(data: Any) -> bool:
    """Some servers (e.g. Google) send ``verification_url`` instead of ``verification_uri``."""
    return (
        isinstance(data, dict)
        and "verification_uri" not in data
        and isinstance(data.get("verification_url"), str)
    )


def normalize_auth_response(data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with ``verification_url`` renamed to ``verification_uri``."""
    result = dict(data)
    if is_auth_response_with_url(result):
        result["verification_uri"] = result.pop("verification_url")
    return result
