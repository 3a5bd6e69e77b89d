"""
auth/dependencies.py -- Session Gate: FastAPI Depends() helpers for authentication.

The only credential this app knows is a persona id in the signed session
cookie, put there by sign_in() after the identity service vouched for it.

session_gate() is the pure core: read the session, return the persona id or
raise AuthorizationError. No network, no database.

try_get_persona() is the soft variant (returns None when signed out).
require_persona() runs the gate, pins the persona id on request.state for the
rest of the request, and hands it to the route:

    @router.get("/notes")
    def list_notes(persona_id: str = Depends(require_persona)): ...

AuthorizationError is turned into a 401 envelope (API) by the exception
handler in api/main.py. Web pages use web.routes._require_auth(), which turns
it into a redirect instead.

Layer rule: no imports from web/, core/, or notes/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlencode

from fastapi import Request

from auth.models import AuthorizationError
from auth.session import SessionContext
from auth.verifier import TokenVerifier


def session_gate(session: SessionContext) -> str:
    """Return the signed-in persona id or raise AuthorizationError."""
    persona_id = session.persona_id
    if persona_id is None:
        raise AuthorizationError()
    return persona_id


def get_session(request: Request) -> SessionContext:
    """Wrap the Starlette session dict for this request."""
    return SessionContext(request.session)


def try_get_persona(request: Request) -> Optional[str]:
    """Return the signed-in persona id, or None. Never raises."""
    return get_session(request).persona_id


def require_persona(request: Request) -> str:
    """Require a signed-in persona. Raises AuthorizationError if there is none.

    On success the id is also stored as request.state.persona_id so
    middleware and templates can see who the request belongs to.
    """
    persona_id = session_gate(get_session(request))
    request.state.persona_id = persona_id
    return persona_id


def get_verifier(request: Request) -> TokenVerifier:
    """Return the TokenVerifier built in lifespan startup."""
    return request.app.state.verifier


def signin_required_url(request: Request) -> str:
    """Home-page URL that asks for sign-in and returns here afterwards.

    next carries the path and query string, URL-encoded. web.routes._safe_next
    still vets it when the sign-in form posts it back.
    """
    target = request.url.path
    if request.url.query:
        target = f"{target}?{request.url.query}"
    return "/?" + urlencode({"error": "signin_required", "next": target})
