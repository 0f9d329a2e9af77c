"""
Botanica Backend — Google OAuth Identity Provider
===================================================

What:  IdentityProvider implementation for Google (OpenID Connect endpoints).
How:   httpx.AsyncClient for the token exchange and the userinfo request.
       A `transport` can be injected so tests drive the provider with
       httpx.MockTransport instead of the network.

Retry policy:
    POST token    → never retried (authorization codes are single-use)
    GET userinfo  → tenacity retries on transport errors (connect/read
                    failures, timeouts) with exponential backoff + jitter.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from botanica.config import settings
from botanica.exceptions import IdentityProviderError
from botanica.services.identity_base import IdentityProvider, IdentityUser

logger = logging.getLogger(__name__)


class GoogleIdentityProvider(IdentityProvider):

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        redirect_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ):
        self.client_id = client_id if client_id is not None else settings.oauth_client_id
        self.client_secret = (
            client_secret if client_secret is not None else settings.oauth_client_secret
        )
        self.redirect_url = redirect_url or settings.oauth_redirect_url
        self._transport = transport
        self._timeout = timeout or settings.identity_timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=self._timeout)

    def authorization_url(self, state: str) -> str:
        if not self.client_id:
            raise IdentityProviderError(
                "Sign-in is not configured. Set OAUTH_CLIENT_ID and OAUTH_CLIENT_SECRET."
            )
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_url,
            "response_type": "code",
            "scope": " ".join(settings.oauth_scope_list),
            "state": state,
            "access_type": "online",
            "prompt": "select_account",
        }
        return f"{settings.oauth_authorize_url}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> str:
        data = {
            "code": code,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": self.redirect_url,
            "grant_type": "authorization_code",
        }
        try:
            async with self._client() as client:
                response = await client.post(settings.oauth_token_url, data=data)
        except httpx.HTTPError as e:
            logger.error("Token exchange failed: %s", e)
            raise IdentityProviderError(context={"stage": "token", "error_type": type(e).__name__})

        payload = self._json(response)
        if response.status_code >= 400 or "access_token" not in payload:
            logger.warning(
                "Token exchange rejected (%d): %s",
                response.status_code,
                payload.get("error_description") or payload.get("error"),
            )
            raise IdentityProviderError(
                "The sign-in link has expired or was already used. Please sign in again.",
                context={"stage": "token", "provider_error": payload.get("error")},
            )
        return payload["access_token"]

    async def fetch_user(self, access_token: str) -> IdentityUser:
        try:
            response = await self._get_userinfo_with_retry(access_token)
        except httpx.TransportError as e:
            logger.error("Userinfo unreachable after retries: %s", e)
            raise IdentityProviderError(context={"stage": "userinfo", "error_type": type(e).__name__})

        payload = self._json(response)
        if response.status_code >= 400:
            logger.warning("Userinfo rejected (%d)", response.status_code)
            raise IdentityProviderError(context={"stage": "userinfo", "status": response.status_code})

        email = (payload.get("email") or "").strip()
        if not email:
            raise IdentityProviderError("The sign-in provider did not return an email address.")
        if payload.get("email_verified") is False:
            raise IdentityProviderError("Your email address is not verified with the sign-in provider.")

        return IdentityUser(
            email=email,
            name=payload.get("name"),
            picture=payload.get("picture"),
            subject=payload.get("sub"),
        )

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential(
            multiplier=settings.retry_min_wait,
            min=settings.retry_min_wait,
            max=settings.retry_max_wait,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _get_userinfo_with_retry(self, access_token: str) -> httpx.Response:
        async with self._client() as client:
            return await client.get(
                settings.oauth_userinfo_url,
                headers={"Authorization": f"Bearer {access_token}"},
            )

    @staticmethod
    def _json(response: httpx.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            return {}
        return payload if isinstance(payload, dict) else {}


identity_provider = GoogleIdentityProvider()
