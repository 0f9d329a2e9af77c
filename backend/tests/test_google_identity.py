"""
Botanica Backend — Google Identity Provider Tests
===================================================

What:  Token exchange, userinfo and the retry policy, without the network.
How:   httpx.MockTransport routes every request to a handler defined per test.
       RETRY_MIN_WAIT / RETRY_MAX_WAIT are 0 in conftest, so retries are instant.

What we test:
    ✅ Consent URL carries client id, redirect URI and state
    ✅ Code exchange → userinfo → IdentityUser
    ✅ Rejected code → IdentityProviderError, never retried
    ✅ Userinfo transport errors are retried, then surface as IdentityProviderError
    ✅ Unverified or missing email is rejected
"""

from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from tenacity import wait_exponential

from botanica.config import settings
from botanica.exceptions import IdentityProviderError
from botanica.services.google_identity import GoogleIdentityProvider

USERINFO = {
    "sub": "1234567890",
    "email": "curator@example.com",
    "email_verified": True,
    "name": "Curator",
    "picture": "https://img.test/c.png",
}


def make_provider(handler) -> GoogleIdentityProvider:
    return GoogleIdentityProvider(
        client_id="cid",
        client_secret="secret",
        redirect_url="http://test/api/admin/callback",
        transport=httpx.MockTransport(handler),
    )


class TestAuthorizationUrl:

    def test_contains_client_and_state(self):
        provider = make_provider(lambda request: httpx.Response(500))
        url = urlparse(provider.authorization_url("state-123"))
        params = parse_qs(url.query)
        assert params["client_id"] == ["cid"]
        assert params["state"] == ["state-123"]
        assert params["redirect_uri"] == ["http://test/api/admin/callback"]
        assert params["response_type"] == ["code"]

    def test_unconfigured_client(self):
        provider = GoogleIdentityProvider(client_id="", client_secret="")
        with pytest.raises(IdentityProviderError):
            provider.authorization_url("state")


class TestAuthenticate:

    @pytest.mark.asyncio
    async def test_success(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url == httpx.URL(settings.oauth_token_url):
                assert b"code=good-code" in request.content
                return httpx.Response(200, json={"access_token": "at-1", "token_type": "Bearer"})
            assert request.headers["Authorization"] == "Bearer at-1"
            return httpx.Response(200, json=USERINFO)

        user = await make_provider(handler).authenticate("good-code")
        assert user.email == "curator@example.com"
        assert user.name == "Curator"
        assert user.subject == "1234567890"

    @pytest.mark.asyncio
    async def test_rejected_code(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            return httpx.Response(400, json={"error": "invalid_grant"})

        with pytest.raises(IdentityProviderError) as exc_info:
            await make_provider(handler).authenticate("used-code")
        assert "expired or was already used" in exc_info.value.message
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_token_transport_error_not_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(IdentityProviderError):
            await make_provider(handler).exchange_code("code")
        assert len(calls) == 1


class TestUserinfoRetry:

    @pytest.mark.asyncio
    async def test_transient_errors_are_retried(self):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(1)
            if len(attempts) < settings.retry_max_attempts:
                raise httpx.ReadTimeout("slow", request=request)
            return httpx.Response(200, json=USERINFO)

        user = await make_provider(handler).fetch_user("at-1")
        assert user.email == "curator@example.com"
        assert len(attempts) == settings.retry_max_attempts

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(1)
            raise httpx.ConnectError("down", request=request)

        with pytest.raises(IdentityProviderError):
            await make_provider(handler).fetch_user("at-1")
        assert len(attempts) == settings.retry_max_attempts

    def test_backoff_is_bounded_exponential(self):
        wait = GoogleIdentityProvider._get_userinfo_with_retry.retry.wait
        assert isinstance(wait, wait_exponential)
        assert wait.max == settings.retry_max_wait
        assert wait.min == settings.retry_min_wait

    @pytest.mark.asyncio
    async def test_http_error_status_not_retried(self):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(1)
            return httpx.Response(401, json={"error": "invalid_token"})

        with pytest.raises(IdentityProviderError):
            await make_provider(handler).fetch_user("expired")
        assert len(attempts) == 1


class TestProfileChecks:

    @pytest.mark.asyncio
    async def test_unverified_email(self):
        profile = dict(USERINFO, email_verified=False)
        provider = make_provider(lambda request: httpx.Response(200, json=profile))
        with pytest.raises(IdentityProviderError) as exc_info:
            await provider.fetch_user("at-1")
        assert "not verified" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_missing_email(self):
        profile = {"sub": "1"}
        provider = make_provider(lambda request: httpx.Response(200, json=profile))
        with pytest.raises(IdentityProviderError):
            await provider.fetch_user("at-1")
