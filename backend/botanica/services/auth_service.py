"""
Botanica Backend — Admin Authorization and Sign-in Flow
=========================================================

What:  Decides whether an identity is an administrator and runs the OAuth
       login/callback exchange.
Who:   botanica.auth (per-request admin gate) and routes/auth.py.

Admin rule (fail closed):
    SELECT FROM users WHERE lower(email) = :email AND role = 'admin'
        exactly one row  → admin
        zero rows        → not admin
        several rows     → not admin (ambiguous authorization data)
        any DB error     → not admin, logged

Callback outcome:
    The identity is always turned into a session (the user did sign in).
    Admin status only changes the message and where the client goes next.
"""

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from botanica.exceptions import AuthenticationError
from botanica.models.user import ADMIN_ROLE, User
from botanica.schemas.auth import CallbackResponse, LoginResponse
from botanica.services.google_identity import identity_provider
from botanica.services.identity_base import IdentityProvider
from botanica.services.session_context import SessionContext, session_context

logger = logging.getLogger(__name__)

DASHBOARD_PATH = "/admin/dashboard"
HOME_PATH = "/"


class AuthService:

    def __init__(
        self,
        provider: Optional[IdentityProvider] = None,
        sessions: Optional[SessionContext] = None,
    ):
        self.provider = provider or identity_provider
        self.sessions = sessions or session_context

    async def is_admin(self, db: AsyncSession, email: Optional[str]) -> bool:
        if not email:
            return False
        normalized = email.strip().lower()
        try:
            result = await db.execute(
                select(User.id)
                .where(func.lower(User.email) == normalized, User.role == ADMIN_ROLE)
                .limit(2)
            )
            rows = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Admin lookup failed for %s, denying: %s", normalized, e)
            return False
        if len(rows) > 1:
            logger.warning("Multiple admin rows for %s, denying", normalized)
            return False
        return len(rows) == 1

    def begin_login(self) -> LoginResponse:
        state = self.sessions.issue_state()
        return LoginResponse(
            authorization_url=self.provider.authorization_url(state),
            state=state,
        )

    async def complete_login(
        self, db: AsyncSession, code: str, state: str, nonce: Optional[str] = None
    ) -> CallbackResponse:
        """
        Finish the authorization-code flow started by begin_login().

        The state is consumed, so a second callback with it fails. `nonce` is
        the value of the login cookie, when the caller has one.

        Raises:
            AuthenticationError:    state missing, forged, expired, replayed or
                                    not issued to this browser
            IdentityProviderError:  the provider rejected the code or is unreachable
        """
        if not self.sessions.consume_state(state, nonce):
            raise AuthenticationError(
                "Authentication failed. Please try again.",
                context={"reason": "invalid_state"},
            )

        user = await self.provider.authenticate(code)
        session = self.sessions.issue(user)
        admin = await self.is_admin(db, user.email)

        if admin:
            message = f"Welcome back, {user.email}!"
            redirect_to = DASHBOARD_PATH
        else:
            message = (
                f"Access denied. {user.email} is not a registered admin. "
                "Please contact the administrator to grant access."
            )
            redirect_to = HOME_PATH

        return CallbackResponse(
            success=admin,
            message=message,
            redirect_to=redirect_to,
            email=user.email,
            is_admin=admin,
            access_token=session.token,
            expires_in=session.expires_in,
        )


auth_service = AuthService()
