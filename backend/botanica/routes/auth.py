"""
Botanica Backend — Sign-in Routes
===================================

What:  OAuth authorization-code sign-in for the admin area, sign-out and
       "who am I".
How:   /login hands out the provider consent URL (or redirects to it),
       /callback exchanges the code, issues a session token and reports
       whether the identity is an admin.

Sign-in sequence:
    client ──GET /api/admin/login──▶ consent URL (signed state) + HttpOnly nonce cookie
    client ──▶ identity provider ──▶ redirect with ?code&state
    client ──GET /api/admin/callback?code&state (+cookie)──▶ CallbackResponse

    The state is accepted once, and only together with the cookie set by the
    login that issued it.
"""

import logging

from fastapi import APIRouter, Cookie, Depends, Query, Response
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from botanica.auth import get_current_session
from botanica.config import settings
from botanica.database import get_db_session
from botanica.exceptions import AuthenticationError
from botanica.schemas.auth import CallbackResponse, LoginResponse, SessionUser
from botanica.schemas.common import ErrorResponse, MessageResponse
from botanica.services.auth_service import auth_service
from botanica.services.session_context import Session, session_context

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Auth"])

STATE_COOKIE = "botanica_oauth_state"
STATE_COOKIE_PATH = "/api/admin"


def _set_state_cookie(response: Response, state: str) -> None:
    response.set_cookie(
        STATE_COOKIE,
        auth_service.sessions.state_nonce(state) or "",
        max_age=settings.oauth_state_expire_minutes * 60,
        path=STATE_COOKIE_PATH,
        httponly=True,
        secure=settings.public_base_url.startswith("https://"),
        samesite="lax",
    )


@router.get(
    "/login",
    response_model=LoginResponse,
    responses={502: {"description": "Sign-in not configured", "model": ErrorResponse}},
    summary="Start sign-in",
    description="Returns the identity provider consent URL; `redirect=true` answers with a 307 to it.",
)
async def login(response: Response, redirect: bool = Query(default=False)):
    result = auth_service.begin_login()
    if redirect:
        redirect_response = RedirectResponse(result.authorization_url, status_code=307)
        _set_state_cookie(redirect_response, result.state)
        return redirect_response
    _set_state_cookie(response, result.state)
    return result


@router.get(
    "/callback",
    response_model=CallbackResponse,
    responses={
        401: {"description": "Invalid, expired or replayed state, or no login cookie", "model": ErrorResponse},
        502: {"description": "Identity provider error", "model": ErrorResponse},
    },
    summary="Complete sign-in",
)
async def callback(
    response: Response,
    code: str | None = Query(default=None),
    state: str | None = Query(default=None),
    error: str | None = Query(default=None, description="Set by the provider when consent was refused"),
    nonce: str | None = Cookie(default=None, alias=STATE_COOKIE),
    db: AsyncSession = Depends(get_db_session),
) -> CallbackResponse:
    if error or not code or not state or not nonce:
        logger.info("Sign-in aborted: error=%s code=%s cookie=%s", error, bool(code), bool(nonce))
        raise AuthenticationError(
            "Authentication failed. Please try again.",
            context={"provider_error": error},
        )
    response.delete_cookie(STATE_COOKIE, path=STATE_COOKIE_PATH)
    return await auth_service.complete_login(db, code=code, state=state, nonce=nonce)


@router.post(
    "/logout",
    response_model=MessageResponse,
    responses={401: {"description": "No live session", "model": ErrorResponse}},
    summary="Sign out",
)
async def logout(session: Session = Depends(get_current_session)) -> MessageResponse:
    session_context.revoke(session.token)
    return MessageResponse(message="Signed out.")


@router.get(
    "/me",
    response_model=SessionUser,
    responses={401: {"description": "No live session", "model": ErrorResponse}},
    summary="Current session user",
)
async def me(
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_session),
) -> SessionUser:
    return SessionUser(
        email=session.email,
        name=session.name,
        picture=session.picture,
        is_admin=await auth_service.is_admin(db, session.email),
    )
