"""
notes/store.py -- SQLAlchemy-backed persistence layer for notes.

Uses SQLAlchemy Core (not ORM) so the Note dataclass in notes/models.py
remains the authoritative domain representation. Swapping SQLite for
PostgreSQL is a connection string change, not a rewrite.

Pattern: Repository + Data Mapper. NoteStore is the repository; _row_to_note
is the mapper. Route handlers never touch SQL directly.

Ownership: every read and write is scoped by persona_id. get_note() with the
wrong owner returns None exactly like a missing id, so callers cannot tell
"not yours" from "does not exist".

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = NoteStore()                                # SQLite default
    store = NoteStore("postgresql://user:pw@host/db")  # PostgreSQL
    note_id = store.create_note({"title": "Groceries", "body": "eggs"}, "p_123")
    note = store.get_note(note_id, "p_123")
    store.update_note(note, {"body": "eggs, milk"})
    store.delete_note(note)
    store.close()
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import Column, Index, Integer, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from core.config import get_settings
from notes.models import Note

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_notes = Table(
    "notes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("persona_id", String(255), nullable=False),
    Column("title", String(200), nullable=False),
    Column("body", Text, nullable=False, server_default=""),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Index("ix_notes_persona_id", "persona_id"),
)

# Only these attributes may be written through create_note() / update_note().
# Validated before any SQL is built so callers cannot touch id or persona_id.
_WRITABLE_FIELDS: frozenset[str] = frozenset({"title", "body"})


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked by a writer.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _checked_attrs(attrs: dict[str, Any]) -> dict[str, Any]:
    unknown = set(attrs) - _WRITABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown note fields: {sorted(unknown)!r}")
    return dict(attrs)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class NoteStore:
    """Repository for Note entities, scoped by owner persona id."""

    def __init__(self, db_url: Optional[str] = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_notes(self, persona_id: str) -> list[Note]:
        """Return every note owned by persona_id, most recently updated first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _notes.select()
                .where(_notes.c.persona_id == persona_id)
                .order_by(_notes.c.updated_at.desc(), _notes.c.id.desc())
            ).fetchall()
        return [_row_to_note(r) for r in rows]

    def get_note(self, note_id: int, persona_id: str) -> Optional[Note]:
        """Look up one note. Returns None if missing or owned by someone else."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _notes.select().where((_notes.c.id == note_id) & (_notes.c.persona_id == persona_id))
            ).fetchone()
        return _row_to_note(row) if row is not None else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_note(self, attrs: dict[str, Any], persona_id: str) -> int:
        """Insert a note for persona_id and return its assigned database ID.

        Raises ValueError for attributes outside the writable whitelist or a
        missing title. Length limits are the caller's concern (api/models.py
        and the web form checks enforce them).
        """
        values = _checked_attrs(attrs)
        if not values.get("title"):
            raise ValueError("title is required")
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _notes.insert().values(
                    persona_id=persona_id,
                    title=values["title"],
                    body=values.get("body") or "",
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def update_note(self, note: Note, attrs: dict[str, Any]) -> Note:
        """Apply attrs to an existing note and return the refreshed record.

        The WHERE clause repeats the owner check, so a Note fetched for one
        persona can never be used to write another persona's row.
        """
        values = _checked_attrs(attrs)
        if "title" in values and not values["title"]:
            raise ValueError("title is required")
        if "body" in values and values["body"] is None:
            values["body"] = ""
        values["updated_at"] = _now_iso()
        with self.engine.connect() as conn:
            conn.execute(
                _notes.update()
                .where((_notes.c.id == note.id) & (_notes.c.persona_id == note.persona_id))
                .values(**values)
            )
            conn.commit()
        refreshed = self.get_note(note.id, note.persona_id)
        if refreshed is None:
            raise LookupError(f"note {note.id} disappeared during update")
        return refreshed

    def delete_note(self, note: Note) -> bool:
        """Delete a note. Returns True if a row was removed."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _notes.delete().where((_notes.c.id == note.id) & (_notes.c.persona_id == note.persona_id))
            )
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_note(row) -> Note:
    return Note(
        id=row.id,
        persona_id=row.persona_id,
        title=row.title,
        body=row.body or "",
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
