"""
web/routes.py -- Jinja2 template routes for the Inkwell web UI.

These routes serve server-rendered HTML. They share app.state with the API
routes (same notes store, same token verifier) but return HTML instead of
JSON.

Route registration order matters. GET /notes/new must be registered before
GET /notes/{note_id} or FastAPI tries to parse "new" as an integer id and
answers 422.

Routes:
  GET  /                         -- home: sign-in widget, or redirect to /notes
  POST /signin                   -- redeem widget token, redirect home
  POST /signout                  -- clear session, redirect home
  GET  /notes                    -- note list (sign-in required)
  GET  /notes/new                -- creation form (sign-in required)
  POST /notes                    -- handle creation, redirect to /notes/{id}
  GET  /notes/{note_id}          -- note detail (sign-in required)
  GET  /notes/{note_id}/edit     -- edit form (sign-in required)
  POST /notes/{note_id}          -- handle edit, redirect to /notes/{id}
  POST /notes/{note_id}/delete   -- delete, redirect to /notes
"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from api.limiter import SIGNIN_LIMIT, limiter
from auth.dependencies import get_session, get_verifier, require_persona, signin_required_url, try_get_persona
from auth.models import AuthenticationError, AuthorizationError
from auth.session import sign_in, sign_out
from core.config import get_settings
from notes.models import BODY_MAX, TITLE_MAX, Note
from notes.store import NoteStore

logger = logging.getLogger("inkwell.web")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
# Expose try_get_persona as a Jinja2 global so layout.html can show the
# sign-out button without every handler passing the persona explicitly.
templates.env.globals["current_persona"] = try_get_persona
router = APIRouter()

# ---------------------------------------------------------------------------
# Auth helpers
# ---------------------------------------------------------------------------

# Whitelist mapping for ?error= query params on /.
# The raw query param is NEVER passed to templates -- only the message from
# this dict is. Prevents reflected XSS via crafted error query strings.
_ERROR_MESSAGES: dict[str, str] = {
    "signin_failed": "We could not sign you in. Please try again.",
    "signin_required": "Please sign in to continue.",
    "rate_limited": "Too many sign-in attempts. Please wait a minute and try again.",
}


def _safe_next(next_url: Optional[str]) -> str:
    """Validate a post-sign-in redirect target. Only accept relative paths.

    Rejects absolute URLs and protocol-relative URLs ("//host", and "/\\host"
    which browsers normalize to the same) so the sign-in form cannot be used
    as an open redirect.
    """
    if next_url and next_url.startswith("/") and not next_url.startswith(("//", "/\\")):
        return next_url
    return "/"


def _require_auth(request: Request) -> Optional[RedirectResponse]:
    """Run the Session Gate for a page request.

    Returns a RedirectResponse to the home page if nobody is signed in, None
    if OK. On success the persona id is available as request.state.persona_id.
    Call at the top of protected route handlers:
        if redirect := _require_auth(request):
            return redirect
    """
    try:
        require_persona(request)
    except AuthorizationError:
        return RedirectResponse(signin_required_url(request), status_code=302)
    return None


def _validate_note_form(title: str, body: str) -> tuple[dict, list[str]]:
    """Normalize form input and collect user-facing errors."""
    title = title.strip()
    body = body.strip()
    errors: list[str] = []
    if not title:
        errors.append("Title is required.")
    elif len(title) > TITLE_MAX:
        errors.append(f"Title must be at most {TITLE_MAX} characters.")
    if len(body) > BODY_MAX:
        errors.append(f"Body must be at most {BODY_MAX} characters.")
    return {"title": title, "body": body}, errors


def _not_found(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(request, "not_found.html", {}, status_code=404)


# ---------------------------------------------------------------------------
# GET / -- home
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
def home(request: Request) -> HTMLResponse:
    """Render the sign-in page, or send a signed-in persona to their notes."""
    if try_get_persona(request) is not None:
        return RedirectResponse("/notes", status_code=302)

    error_msg = _ERROR_MESSAGES.get(request.query_params.get("error", ""))
    return templates.TemplateResponse(
        request,
        "home.html",
        {
            "error_msg": error_msg,
            "next_url": _safe_next(request.query_params.get("next")),
            "site_token": get_verifier(request).config.site_token,
            "widget_script_url": get_settings().widget_script_url,
        },
    )


# ---------------------------------------------------------------------------
# Sign-in / sign-out
# ---------------------------------------------------------------------------


@router.post("/signin")
@limiter.limit(SIGNIN_LIMIT)
def signin(
    request: Request,
    token: str = Form(default=""),
    next_url: str = Form(default="/", alias="next"),
) -> RedirectResponse:
    """Handle the widget form post.

    Success: persona bound to session, redirect to ?next or home.
    Failure: session untouched, redirect home with a generic error flag.
    """
    try:
        sign_in(get_session(request), token, get_verifier(request))
    except AuthenticationError:
        resp = RedirectResponse("/?error=signin_failed", status_code=302)
        resp.headers["Cache-Control"] = "no-store"
        return resp

    resp = RedirectResponse(_safe_next(next_url), status_code=302)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/signout")
def signout(request: Request) -> RedirectResponse:
    """Clear the session and redirect home."""
    sign_out(get_session(request))
    return RedirectResponse("/", status_code=302)


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------


@router.get("/notes", response_class=HTMLResponse)
def note_list(request: Request) -> HTMLResponse:
    if redirect := _require_auth(request):
        return redirect
    store: NoteStore = request.app.state.notes
    notes = store.list_notes(request.state.persona_id)
    return templates.TemplateResponse(request, "notes/list.html", {"notes": notes})


@router.get("/notes/new", response_class=HTMLResponse)
def note_create_form(request: Request) -> HTMLResponse:
    """Render the empty note form."""
    if redirect := _require_auth(request):
        return redirect
    return templates.TemplateResponse(
        request,
        "notes/form.html",
        {"note": None, "values": {"title": "", "body": ""}, "errors": []},
    )


@router.post("/notes", response_class=HTMLResponse)
def note_create(
    request: Request,
    title: str = Form(default=""),
    body: str = Form(default=""),
) -> HTMLResponse:
    """Create a note, or re-render the form with errors (422)."""
    if redirect := _require_auth(request):
        return redirect
    attrs, errors = _validate_note_form(title, body)
    if errors:
        return templates.TemplateResponse(
            request,
            "notes/form.html",
            {"note": None, "values": attrs, "errors": errors},
            status_code=422,
        )
    store: NoteStore = request.app.state.notes
    note_id = store.create_note(attrs, request.state.persona_id)
    return RedirectResponse(f"/notes/{note_id}", status_code=303)


@router.get("/notes/{note_id}", response_class=HTMLResponse)
def note_detail(request: Request, note_id: int) -> HTMLResponse:
    if redirect := _require_auth(request):
        return redirect
    store: NoteStore = request.app.state.notes
    note = store.get_note(note_id, request.state.persona_id)
    if note is None:
        return _not_found(request)
    return templates.TemplateResponse(request, "notes/detail.html", {"note": note})


@router.get("/notes/{note_id}/edit", response_class=HTMLResponse)
def note_edit_form(request: Request, note_id: int) -> HTMLResponse:
    if redirect := _require_auth(request):
        return redirect
    store: NoteStore = request.app.state.notes
    note: Optional[Note] = store.get_note(note_id, request.state.persona_id)
    if note is None:
        return _not_found(request)
    return templates.TemplateResponse(
        request,
        "notes/form.html",
        {"note": note, "values": {"title": note.title, "body": note.body}, "errors": []},
    )


@router.post("/notes/{note_id}", response_class=HTMLResponse)
def note_update(
    request: Request,
    note_id: int,
    title: str = Form(default=""),
    body: str = Form(default=""),
) -> HTMLResponse:
    """Apply an edit, or re-render the form with errors (422)."""
    if redirect := _require_auth(request):
        return redirect
    store: NoteStore = request.app.state.notes
    note = store.get_note(note_id, request.state.persona_id)
    if note is None:
        return _not_found(request)
    attrs, errors = _validate_note_form(title, body)
    if errors:
        return templates.TemplateResponse(
            request,
            "notes/form.html",
            {"note": note, "values": attrs, "errors": errors},
            status_code=422,
        )
    store.update_note(note, attrs)
    return RedirectResponse(f"/notes/{note_id}", status_code=303)


@router.post("/notes/{note_id}/delete")
def note_delete(request: Request, note_id: int) -> HTMLResponse:
    if redirect := _require_auth(request):
        return redirect
    store: NoteStore = request.app.state.notes
    note = store.get_note(note_id, request.state.persona_id)
    if note is None:
        return _not_found(request)
    store.delete_note(note)
    return RedirectResponse("/notes", status_code=303)
