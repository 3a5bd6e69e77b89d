"""
api/routes/v1/auth.py -- Passwordless sign-in endpoints for API clients.

Routes:
  GET  /api/v1/auth/widget   -- public widget settings (site token, script URL)
  POST /api/v1/auth/signin   -- redeem a widget token; binds persona to session
  POST /api/v1/auth/signout  -- clear the session; 200
  GET  /api/v1/auth/me       -- current persona (requires sign-in)

Security:
  POST /signin is rate-limited per IP (SIGNIN_RATE_LIMIT). Every attempt
  costs one call to the identity service.
  Failure responses are generic ("authentication_failed") whatever the
  underlying reason. The reason is logged server-side only.
  Cache-Control: no-store on sign-in responses.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import SIGNIN_LIMIT, limiter
from api.models import ErrorDetail, ErrorResponse, MessageResponse, PersonaResponse, SignInRequest, WidgetConfigResponse
from auth.dependencies import get_session, get_verifier, require_persona
from auth.models import AuthenticationError
from auth.session import sign_in, sign_out
from auth.verifier import TokenVerifier
from core.config import get_settings

# Auth policy:
# - GET  /api/v1/auth/widget:   public -- the client needs it before signing in
# - POST /api/v1/auth/signin:   public -- this is how a session is established
# - POST /api/v1/auth/signout:  public -- clearing a session needs no prior auth
# - GET  /api/v1/auth/me:       requires sign-in (require_persona)
router = APIRouter()


@router.get("/auth/widget", response_model=WidgetConfigResponse)
def widget_config(verifier: TokenVerifier = Depends(get_verifier)) -> WidgetConfigResponse:
    """Return the public site token and widget script URL."""
    return WidgetConfigResponse(
        site_token=verifier.config.site_token,
        script_url=get_settings().widget_script_url,
    )


@router.post("/auth/signin", response_model=PersonaResponse)
@limiter.limit(SIGNIN_LIMIT)
def signin(
    request: Request,
    body: SignInRequest,
    verifier: TokenVerifier = Depends(get_verifier),
) -> JSONResponse:
    """Exchange a widget token for a signed-in session.

    On success the session cookie is (re)issued by SessionMiddleware and the
    body names the persona. On any verification failure the session is left
    untouched and a generic 401 is returned.
    """
    try:
        persona_id = sign_in(get_session(request), body.token, verifier)
    except AuthenticationError:
        resp = JSONResponse(
            status_code=401,
            content=ErrorResponse(
                error=ErrorDetail(code="authentication_failed", message="Sign-in failed.")
            ).model_dump(exclude_none=True),
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    resp = JSONResponse(status_code=200, content=PersonaResponse(persona_id=persona_id).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/signout", response_model=MessageResponse)
def signout(request: Request) -> MessageResponse:
    """Clear the session. Succeeds whether or not anyone was signed in."""
    sign_out(get_session(request))
    return MessageResponse(message="Signed out.")


@router.get("/auth/me", response_model=PersonaResponse)
def me(persona_id: str = Depends(require_persona)) -> PersonaResponse:
    """Return the persona bound to the current session."""
    return PersonaResponse(persona_id=persona_id)
