"""
Botanica Backend — Abstract Identity Provider Interface
=========================================================

What:  Contract for the OAuth 2.0 authorization-code sign-in the admin area uses.
How:   Concrete providers build the consent URL, exchange the returned code
       for tokens and resolve the signed-in user's profile.
Who:   AuthService during GET /api/admin/login and /api/admin/callback.

The provider only establishes WHO the user is. Whether that user is an
administrator is decided by AuthService against the `users` table.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class IdentityUser:
    email: str
    name: Optional[str] = None
    picture: Optional[str] = None
    subject: Optional[str] = None


class IdentityProvider(ABC):
    """
    Contract:
        - authorization_url() is pure: no network calls
        - exchange_code() is not retried (authorization codes are single-use)
        - All provider failures surface as IdentityProviderError
    """

    @abstractmethod
    def authorization_url(self, state: str) -> str:
        ...

    @abstractmethod
    async def exchange_code(self, code: str) -> str:
        """Trade an authorization code for an access token."""
        ...

    @abstractmethod
    async def fetch_user(self, access_token: str) -> IdentityUser:
        ...

    async def authenticate(self, code: str) -> IdentityUser:
        access_token = await self.exchange_code(code)
        return await self.fetch_user(access_token)
