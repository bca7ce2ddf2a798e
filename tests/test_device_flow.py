"""Tests for the device authorization request, token polling and scopes."""

import asyncio
from dataclasses import replace
from urllib.parse import parse_qs

import httpx
import pytest

from glean_auth.core.config import OAuthConfig
from glean_auth.oauth.device_flow import poll_for_token, request_device_authorization
from glean_auth.oauth.scopes import DEFAULT_SCOPES, get_oauth_scopes, registrable_domain
from glean_auth.oauth.types import DEVICE_CODE_GRANT_TYPE, AuthResponse
from glean_auth.utils.errors import AuthError, AuthErrorCode

from conftest import DEVICE_ENDPOINT, TOKEN_ENDPOINT, FakeClock

def pending(request: httpx.Request | None = None) -> httpx.Response:
    return httpx.Response(400, json={"error": "authorization_pending"})


def success(request: httpx.Request | None = None) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "access_token": "access-123",
            "refresh_token": "refresh-456",
            "token_type": "Bearer",
            "expires_in": 3600,
        },
    )


def form(request: httpx.Request) -> dict[str, str]:
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


class TestScopes:
    """Tests for per-issuer scope selection."""

    def test_okta_issuer(self, oauth_config: OAuthConfig):
        """Test Okta issuers get the default scopes."""
        assert get_oauth_scopes(oauth_config) == "openid profile offline_access"

    def test_google_issuer(self, oauth_config: OAuthConfig):
        """Test Google issuers skip offline_access."""
        config = replace(oauth_config, issuer="https://accounts.google.com")
        assert (
            get_oauth_scopes(config)
            == "openid profile https://www.googleapis.com/auth/userinfo.email"
        )

    def test_unknown_issuer(self, oauth_config: OAuthConfig):
        """Test unknown issuers get the default scopes."""
        config = replace(oauth_config, issuer="https://login.microsoftonline.com/tenant/v2.0")
        assert get_oauth_scopes(config) == DEFAULT_SCOPES

    def test_registrable_domain(self):
        """Test subdomains and multi-part suffixes are handled."""
        assert registrable_domain("https://acme.okta.com/oauth2/default") == "okta.com"
        assert registrable_domain("https://sso.example.co.uk") == "example.co.uk"
        assert registrable_domain("http://localhost:8080") == ""


class TestRequestDeviceAuthorization:
    """Tests for request_device_authorization."""

    @pytest.mark.asyncio
    async def test_success(self, router, oauth_config: OAuthConfig):
        """Test a standard device authorization response."""
        route = router.post(DEVICE_ENDPOINT).mock(
            return_value=httpx.Response(
                200,
                json={
                    "device_code": "dev-1",
                    "user_code": "WXYZ-1234",
                    "verification_uri": "https://acme.okta.com/activate",
                    "verification_uri_complete": (
                        "https://acme.okta.com/activate?user_code=WXYZ-1234"
                    ),
                    "expires_in": 600,
                    "interval": 2,
                },
            )
        )

        async with httpx.AsyncClient() as client:
            auth_response = await request_device_authorization(client, oauth_config)

        assert auth_response.device_code == "dev-1"
        assert auth_response.user_code == "WXYZ-1234"
        assert auth_response.interval == 2
        assert form(route.calls.last.request) == {
            "client_id": "device-client",
            "scope": "openid profile offline_access",
        }

    @pytest.mark.asyncio
    async def test_verification_url_normalized(self, router, oauth_config: OAuthConfig):
        """Test servers that send verification_url instead of verification_uri."""
        router.post(DEVICE_ENDPOINT).mock(
            return_value=httpx.Response(
                200,
                json={
                    "device_code": "dev-1",
                    "user_code": "WXYZ-1234",
                    "verification_url": "https://www.google.com/device",
                    "expires_in": 1800,
                },
            )
        )

        async with httpx.AsyncClient() as client:
            auth_response = await request_device_authorization(client, oauth_config)

        assert auth_response.verification_uri == "https://www.google.com/device"
        assert auth_response.interval == 5

    @pytest.mark.asyncio
    async def test_server_error(self, router, oauth_config: OAuthConfig):
        """Test non-2xx responses carry the status and body."""
        router.post(DEVICE_ENDPOINT).mock(
            return_value=httpx.Response(400, json={"error": "invalid_client"})
        )

        async with httpx.AsyncClient() as client:
            with pytest.raises(AuthError) as exc_info:
                await request_device_authorization(client, oauth_config)

        assert exc_info.value.code == AuthErrorCode.UNEXPECTED_AUTH_GRANT_ERROR
        assert exc_info.value.cause == {"status": 400, "body": {"error": "invalid_client"}}

    @pytest.mark.asyncio
    async def test_network_error(self, router, oauth_config: OAuthConfig):
        """Test connection failures."""
        router.post(DEVICE_ENDPOINT).mock(side_effect=httpx.ConnectError("refused"))

        async with httpx.AsyncClient() as client:
            with pytest.raises(AuthError) as exc_info:
                await request_device_authorization(client, oauth_config)

        assert exc_info.value.code == AuthErrorCode.UNEXPECTED_AUTH_GRANT_ERROR

    @pytest.mark.asyncio
    async def test_unexpected_shape(self, router, oauth_config: OAuthConfig):
        """Test 2xx bodies that aren't device authorization responses."""
        router.post(DEVICE_ENDPOINT).mock(
            return_value=httpx.Response(200, json={"device_code": "dev-1"})
        )

        async with httpx.AsyncClient() as client:
            with pytest.raises(AuthError) as exc_info:
                await request_device_authorization(client, oauth_config)

        assert exc_info.value.code == AuthErrorCode.UNEXPECTED_AUTH_GRANT_RESPONSE
        assert exc_info.value.cause == {"device_code": "dev-1"}


class TestPollForToken:
    """Tests for poll_for_token."""

    @pytest.mark.asyncio
    async def test_success_after_pending(
        self, router, oauth_config: OAuthConfig, auth_response: AuthResponse, fake_clock: FakeClock
    ):
        """Test polling continues through authorization_pending."""
        route = router.post(TOKEN_ENDPOINT).mock(
            side_effect=[pending(), pending(), pending(), success()]
        )

        async with httpx.AsyncClient() as client:
            token_response = await poll_for_token(
                client, auth_response, oauth_config, clock=fake_clock, sleep=fake_clock.sleep
            )

        assert token_response.access_token == "access-123"
        assert token_response.refresh_token == "refresh-456"
        assert route.call_count == 4
        assert fake_clock.now >= 3 * auth_response.interval

    @pytest.mark.asyncio
    async def test_request_fields(
        self, router, oauth_config: OAuthConfig, auth_response: AuthResponse, fake_clock: FakeClock
    ):
        """Test the grant type, device code and client id are sent."""
        route = router.post(TOKEN_ENDPOINT).mock(side_effect=success)

        async with httpx.AsyncClient() as client:
            await poll_for_token(
                client, auth_response, oauth_config, clock=fake_clock, sleep=fake_clock.sleep
            )

        assert form(route.calls.last.request) == {
            "client_id": "device-client",
            "grant_type": DEVICE_CODE_GRANT_TYPE,
            "device_code": "device-code-123",
        }

    @pytest.mark.asyncio
    async def test_client_secret_sent(
        self, router, oauth_config: OAuthConfig, auth_response: AuthResponse, fake_clock: FakeClock
    ):
        """Test a configured client secret is included."""
        route = router.post(TOKEN_ENDPOINT).mock(side_effect=success)
        config = replace(oauth_config, client_secret="s3cret")

        async with httpx.AsyncClient() as client:
            await poll_for_token(
                client, auth_response, config, clock=fake_clock, sleep=fake_clock.sleep
            )

        assert form(route.calls.last.request)["client_secret"] == "s3cret"

    @pytest.mark.asyncio
    async def test_timeout(
        self, router, oauth_config: OAuthConfig, auth_response: AuthResponse, fake_clock: FakeClock
    ):
        """Test polling gives up after ten minutes of pending responses."""
        poll_times: list[float] = []

        def record_pending(request: httpx.Request) -> httpx.Response:
            poll_times.append(fake_clock.now)
            return pending()

        route = router.post(TOKEN_ENDPOINT).mock(side_effect=record_pending)

        async with httpx.AsyncClient() as client:
            with pytest.raises(AuthError) as exc_info:
                await poll_for_token(
                    client, auth_response, oauth_config, clock=fake_clock, sleep=fake_clock.sleep
                )

        assert exc_info.value.code == AuthErrorCode.OAUTH_POLLING_TIMEOUT
        assert fake_clock.now >= 600
        assert route.call_count == 120
        # Still polling at 595s; no timeout before the deadline
        assert poll_times[-1] == 595
        assert all(t < 599 for t in poll_times)

    @pytest.mark.asyncio
    async def test_success_just_before_deadline(
        self, router, oauth_config: OAuthConfig, auth_response: AuthResponse, fake_clock: FakeClock
    ):
        """Test authorization completing on the last poll before the deadline."""
        router.post(TOKEN_ENDPOINT).mock(side_effect=[pending() for _ in range(119)] + [success()])

        async with httpx.AsyncClient() as client:
            token_response = await poll_for_token(
                client, auth_response, oauth_config, clock=fake_clock, sleep=fake_clock.sleep
            )

        assert token_response.access_token == "access-123"
        assert fake_clock.now == 595

    @pytest.mark.asyncio
    async def test_timeout_while_request_in_flight(
        self, oauth_config: OAuthConfig, auth_response: AuthResponse
    ):
        """Test the deadline also ends a token request that never completes."""
        requests: list[httpx.Request] = []

        async def never_respond(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            await asyncio.Event().wait()
            return pending()

        transport = httpx.MockTransport(never_respond)
        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(AuthError) as exc_info:
                await asyncio.wait_for(
                    poll_for_token(client, auth_response, oauth_config, timeout=0.2),
                    timeout=5,
                )

        assert exc_info.value.code == AuthErrorCode.OAUTH_POLLING_TIMEOUT
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_terminal_error(
        self, router, oauth_config: OAuthConfig, auth_response: AuthResponse, fake_clock: FakeClock
    ):
        """Test errors other than authorization_pending stop polling."""
        route = router.post(TOKEN_ENDPOINT).mock(
            side_effect=[pending(), httpx.Response(400, json={"error": "access_denied"})]
        )

        async with httpx.AsyncClient() as client:
            with pytest.raises(AuthError) as exc_info:
                await poll_for_token(
                    client, auth_response, oauth_config, clock=fake_clock, sleep=fake_clock.sleep
                )

        assert exc_info.value.code == AuthErrorCode.UNEXPECTED_AUTH_GRANT_ERROR
        assert exc_info.value.cause == {"error": "access_denied"}
        assert route.call_count == 2

    @pytest.mark.asyncio
    async def test_network_error(
        self, router, oauth_config: OAuthConfig, auth_response: AuthResponse, fake_clock: FakeClock
    ):
        """Test connection failures stop polling."""
        router.post(TOKEN_ENDPOINT).mock(side_effect=httpx.ConnectError("refused"))

        async with httpx.AsyncClient() as client:
            with pytest.raises(AuthError) as exc_info:
                await poll_for_token(
                    client, auth_response, oauth_config, clock=fake_clock, sleep=fake_clock.sleep
                )

        assert exc_info.value.code == AuthErrorCode.UNEXPECTED_AUTH_GRANT_ERROR
        assert isinstance(exc_info.value.cause, httpx.ConnectError)
