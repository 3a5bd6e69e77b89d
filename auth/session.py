"""
auth/session.py -- Explicit session context plus the sign-in / sign-out actions.

Starlette's SessionMiddleware exposes request.session as a plain dict backed
by a signed cookie. Route code never touches that dict directly; it wraps it
in a SessionContext and passes the context down the call chain. That keeps the
one attribute we care about (persona_id) behind a small get/set/clear surface
that unit tests can drive with an ordinary dict.

Session state machine:
    Anonymous --sign_in ok--> Authenticated --sign_out / cookie expiry--> Anonymous
    Anonymous --sign_in fails--> Anonymous (session untouched)

A persona id in session is trusted until the cookie expires. There is no
local list of valid personas -- the identity service vouched for it once at
sign-in and that is the whole trust chain.

Layer rule: no imports from api/, web/, core/, or notes/.
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from auth.verifier import TokenVerifier

logger = logging.getLogger("inkwell.auth.session")

PERSONA_KEY = "persona_id"


class SessionContext:
    """Per-request view over the session mapping.

    Usage:
        ctx = SessionContext(request.session)
        ctx.persona_id          # None when signed out
        ctx.set(PERSONA_KEY, "p_123")
        ctx.clear()
    """

    def __init__(self, data: MutableMapping[str, Any]) -> None:
        self._data = data

    def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def clear(self) -> None:
        self._data.clear()

    @property
    def persona_id(self) -> Optional[str]:
        """The signed-in persona, or None. Empty or non-string values count as absent."""
        value = self._data.get(PERSONA_KEY)
        if isinstance(value, str) and value:
            return value
        return None


def sign_in(session: SessionContext, token: str, verifier: TokenVerifier) -> str:
    """Verify token and, on success, bind the returned persona to the session.

    The session is cleared before the persona is stored so it ends up holding
    exactly one identity. On failure the session is left exactly as it was.

    Raises:
        AuthenticationError: the identity service did not vouch for the token.
    """
    result = verifier.verify(token)
    if not result.ok:
        logger.info("Sign-in rejected (%s)", result.error.reason)
    persona_id = result.unwrap()

    session.clear()
    session.set(PERSONA_KEY, persona_id)
    logger.info("Signed in persona %s", persona_id)
    return persona_id


def sign_out(session: SessionContext) -> None:
    """Forget whoever is signed in. Idempotent; no network call."""
    persona_id = session.persona_id
    session.clear()
    if persona_id:
        logger.info("Signed out persona %s", persona_id)
