"""
api/routes/v1/notes.py -- Note CRUD routes for the Inkwell REST API.

Routes:
  GET    /notes             -- list the caller's notes
  POST   /notes             -- create a note
  GET    /notes/{note_id}   -- one note
  PATCH  /notes/{note_id}   -- update title and/or body
  DELETE /notes/{note_id}   -- delete

Ownership: every handler receives the persona id from the Session Gate and
passes it to the store. A note that belongs to another persona is reported as
404, the same as a note that does not exist.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.models import ErrorDetail, NoteCreate, NoteResponse, NoteUpdate
from auth.dependencies import require_persona
from notes.models import Note
from notes.store import NoteStore

# All note routes require a signed-in persona. The router-level dependency
# guarantees the gate runs even for handlers that do not take persona_id.
router = APIRouter(dependencies=[Depends(require_persona)])


def _to_response(note: Note) -> NoteResponse:
    return NoteResponse(
        id=note.id,
        title=note.title,
        body=note.body,
        created_at=note.created_at,
        updated_at=note.updated_at,
    )


def _get_owned_note(store: NoteStore, note_id: int, persona_id: str) -> Note:
    note = store.get_note(note_id, persona_id)
    if note is None:
        raise HTTPException(
            status_code=404,
            detail=ErrorDetail(code="not_found", message="Note not found.").model_dump(exclude_none=True),
        )
    return note


@router.get("/notes", response_model=list[NoteResponse])
def list_notes(request: Request, persona_id: str = Depends(require_persona)) -> list[NoteResponse]:
    """Return the caller's notes, most recently updated first."""
    store: NoteStore = request.app.state.notes
    return [_to_response(n) for n in store.list_notes(persona_id)]


@router.post("/notes", response_model=NoteResponse, status_code=201)
def create_note(
    request: Request,
    body: NoteCreate,
    persona_id: str = Depends(require_persona),
) -> NoteResponse:
    """Create a note owned by the caller."""
    store: NoteStore = request.app.state.notes
    note_id = store.create_note({"title": body.title, "body": body.body}, persona_id)
    return _to_response(_get_owned_note(store, note_id, persona_id))


@router.get("/notes/{note_id}", response_model=NoteResponse)
def get_note(request: Request, note_id: int, persona_id: str = Depends(require_persona)) -> NoteResponse:
    store: NoteStore = request.app.state.notes
    return _to_response(_get_owned_note(store, note_id, persona_id))


@router.patch("/notes/{note_id}", response_model=NoteResponse)
def update_note(
    request: Request,
    note_id: int,
    body: NoteUpdate,
    persona_id: str = Depends(require_persona),
) -> NoteResponse:
    """Update the fields present in the body. An empty body is a 400."""
    store: NoteStore = request.app.state.notes
    note = _get_owned_note(store, note_id, persona_id)
    updates = body.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(code="no_changes", message="No fields to update.").model_dump(exclude_none=True),
        )
    return _to_response(store.update_note(note, updates))


@router.delete("/notes/{note_id}", status_code=204)
def delete_note(request: Request, note_id: int, persona_id: str = Depends(require_persona)) -> Response:
    store: NoteStore = request.app.state.notes
    note = _get_owned_note(store, note_id, persona_id)
    store.delete_note(note)
    return Response(status_code=204)
