"""
Botanica Backend — Request Authentication Dependencies
========================================================

What:  FastAPI dependencies that resolve the caller's session and enforce the
       admin gate.
How:   `Authorization: Bearer <session token>` is verified by the process-wide
       SessionContext; admin status is re-checked against the `users` table
       on every request, so removing a row takes effect immediately.

    get_current_session  → 401 when no live session
    require_admin        → 401 when no live session, 403 when not an admin
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from botanica.database import get_db_session
from botanica.exceptions import AccessDeniedError, AuthenticationError
from botanica.services.auth_service import auth_service
from botanica.services.session_context import Session, session_context

bearer = HTTPBearer(auto_error=False)


async def get_current_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> Session:
    if credentials is None:
        raise AuthenticationError()
    session = session_context.verify(credentials.credentials)
    if session is None:
        raise AuthenticationError(
            "Your session has expired or was signed out. Please sign in again."
        )
    return session


async def require_admin(
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db_session),
) -> Session:
    if not await auth_service.is_admin(db, session.email):
        raise AccessDeniedError(session.email)
    return session
