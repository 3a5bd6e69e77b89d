"""
API request and response models for Inkwell REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in notes/models.py and
auth/models.py, which own the internal domain representation. Route handlers
map between the two.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from notes.models import BODY_MAX, TITLE_MAX

# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class SignInRequest(BaseModel):
    """Body for POST /api/v1/auth/signin -- the token produced by the widget."""

    # The token is opaque and is forwarded byte for byte; no stripping.
    token: str = Field(min_length=1, max_length=2048)


class PersonaResponse(BaseModel):
    """Identity of the signed-in session (sign-in result and GET /auth/me)."""

    model_config = ConfigDict(frozen=True)

    persona_id: str


class WidgetConfigResponse(BaseModel):
    """Public values a browser client needs to load the sign-in widget."""

    model_config = ConfigDict(frozen=True)

    site_token: str
    script_url: str


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------


class NoteCreate(BaseModel):
    """Body for POST /api/v1/notes."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=TITLE_MAX)
    body: str = Field(default="", max_length=BODY_MAX)


class NoteUpdate(BaseModel):
    """Body for PATCH /api/v1/notes/{id}. Omitted fields are left unchanged."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=TITLE_MAX)
    body: Optional[str] = Field(default=None, max_length=BODY_MAX)

    @field_validator("title")
    @classmethod
    def title_not_null(cls, value: Optional[str]) -> Optional[str]:
        """An explicit null title would blank the note; only omission means 'keep'."""
        if value is None:
            raise ValueError("title may be omitted but not null")
        return value


class NoteResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    body: str
    created_at: str
    updated_at: str
