"""
notes/models.py -- Domain dataclass for notes.

Pure data container with zero logic. Ownership scoping, timestamps and the
update whitelist live in notes/store.py.
"""

from dataclasses import dataclass
from typing import Optional

TITLE_MAX = 200
BODY_MAX = 10_000


@dataclass
class Note:
    """A note owned by exactly one persona.

    persona_id is the identity service's opaque id for the owner. Every store
    query filters on it, so a note is invisible to everyone else.

    id is None before the record is written to the database.
    """

    persona_id: str
    title: str
    body: str = ""
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""  # ISO 8601, set by store on insert and update
