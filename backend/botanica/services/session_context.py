"""
Botanica Backend — Session Context
====================================

What:  The single process-wide owner of sign-in sessions.
How:   Sessions are HS256 JWTs (python-jose) carrying the identity provider's
       email, a random session id (`sid`) and an expiry. Sign-out records the
       sid in an in-memory revocation map until the token would have expired.
Who:   The auth routes (issue, revoke), the request dependencies in
       botanica.auth (verify), and any subscriber interested in auth events.

Events:
    subscribe(callback) registers `callback(event, session)` and returns an
    unsubscribe function. Events are AuthEvent.SIGNED_IN / SIGNED_OUT.
    A failing subscriber is logged and never affects the sign-in itself.

OAuth state:
    issue_state() produces the short-lived signed `state` parameter that ties
    a callback to a login this service started. consume_state() accepts it
    once: its nonce is remembered until expiry, and when the caller passes
    the nonce from the browser cookie set at login, the two must match.

Single process:
    Revocations and consumed states live in this process's memory. Running
    several workers needs a shared store for both.
"""

import enum
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from jose import JWTError, jwt

from botanica.config import settings
from botanica.services.identity_base import IdentityUser

logger = logging.getLogger(__name__)

_SESSION_TYPE = "session"
_STATE_TYPE = "oauth_state"


class AuthEvent(str, enum.Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"


@dataclass(frozen=True)
class Session:
    token: str
    sid: str
    email: str
    name: Optional[str]
    picture: Optional[str]
    expires_at: int

    @property
    def expires_in(self) -> int:
        return max(self.expires_at - int(time.time()), 0)


AuthListener = Callable[[AuthEvent, Session], None]


class SessionContext:

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        expire_minutes: Optional[int] = None,
        state_expire_minutes: Optional[int] = None,
    ):
        self._secret_key = secret_key or settings.session_secret_key
        self._algorithm = algorithm or settings.session_algorithm
        self._expire_seconds = (expire_minutes or settings.session_expire_minutes) * 60
        self._state_expire_seconds = (
            state_expire_minutes or settings.oauth_state_expire_minutes
        ) * 60
        self._revoked: Dict[str, int] = {}
        self._consumed_states: Dict[str, int] = {}
        self._listeners: List[AuthListener] = []

    # ── Sessions ──────────────────────────────────────────────────────────

    def issue(self, user: IdentityUser) -> Session:
        now = int(time.time())
        claims = {
            "typ": _SESSION_TYPE,
            "sub": user.email,
            "sid": secrets.token_hex(16),
            "name": user.name,
            "picture": user.picture,
            "iat": now,
            "exp": now + self._expire_seconds,
        }
        token = jwt.encode(claims, self._secret_key, algorithm=self._algorithm)
        session = self._to_session(token, claims)
        self._emit(AuthEvent.SIGNED_IN, session)
        return session

    def verify(self, token: str) -> Optional[Session]:
        """The session a token stands for, or None if it is invalid, expired or revoked."""
        claims = self._decode(token, _SESSION_TYPE)
        if claims is None or not claims.get("sub") or not claims.get("sid"):
            return None
        if claims["sid"] in self._revoked:
            return None
        return self._to_session(token, claims)

    def revoke(self, token: str) -> Optional[Session]:
        """Sign out. Returns the revoked session, or None if the token was not live."""
        session = self.verify(token)
        if session is None:
            return None
        self._prune_revoked()
        self._revoked[session.sid] = session.expires_at
        self._emit(AuthEvent.SIGNED_OUT, session)
        return session

    # ── OAuth state ───────────────────────────────────────────────────────

    def issue_state(self) -> str:
        now = int(time.time())
        claims = {
            "typ": _STATE_TYPE,
            "nonce": secrets.token_urlsafe(16),
            "iat": now,
            "exp": now + self._state_expire_seconds,
        }
        return jwt.encode(claims, self._secret_key, algorithm=self._algorithm)

    def verify_state(self, state: str) -> bool:
        return self._decode(state, _STATE_TYPE) is not None

    def state_nonce(self, state: str) -> Optional[str]:
        claims = self._decode(state, _STATE_TYPE)
        return claims.get("nonce") if claims else None

    def consume_state(self, state: str, nonce: Optional[str] = None) -> bool:
        """
        Accept a state exactly once. With `nonce`, it must also match the one
        the state was issued with.
        """
        claims = self._decode(state, _STATE_TYPE)
        if claims is None or not claims.get("nonce"):
            return False
        issued = claims["nonce"]
        if nonce is not None and not secrets.compare_digest(nonce, issued):
            logger.warning("OAuth state does not match the login cookie")
            return False
        self._prune_consumed()
        if issued in self._consumed_states:
            logger.warning("OAuth state replayed")
            return False
        self._consumed_states[issued] = int(claims["exp"])
        return True

    # ── Events ────────────────────────────────────────────────────────────

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: AuthEvent, session: Session) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, session)
            except Exception:
                logger.exception("Auth listener %r failed on %s", listener, event.value)

    # ── Internals ─────────────────────────────────────────────────────────

    def _decode(self, token: str, expected_type: str) -> Optional[dict]:
        if not token:
            return None
        try:
            claims = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except JWTError as e:
            logger.debug("Rejected %s token: %s", expected_type, e)
            return None
        if claims.get("typ") != expected_type:
            return None
        return claims

    def _prune_revoked(self) -> None:
        now = int(time.time())
        for sid in [sid for sid, exp in self._revoked.items() if exp <= now]:
            del self._revoked[sid]

    def _prune_consumed(self) -> None:
        now = int(time.time())
        for nonce in [n for n, exp in self._consumed_states.items() if exp <= now]:
            del self._consumed_states[nonce]

    @staticmethod
    def _to_session(token: str, claims: dict) -> Session:
        return Session(
            token=token,
            sid=claims["sid"],
            email=claims["sub"],
            name=claims.get("name"),
            picture=claims.get("picture"),
            expires_at=int(claims["exp"]),
        )


session_context = SessionContext()
