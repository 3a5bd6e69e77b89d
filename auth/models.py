"""
auth/models.py -- Domain dataclasses and errors for the sign-in flow.

Pattern: Data class (pure data container, almost zero logic). The verifier
and the session helpers do the work; these types only carry values between
them.

The verification outcome is a tagged union -- Verified | Rejected -- rather
than an exception thrown out of TokenVerifier.verify(). Callers branch on the
type (or call unwrap() when they do want an exception).

Layer rule: no imports from api/, web/, core/, or notes/.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

# Failure reasons carried by AuthenticationError. Fixed codes only -- the raw
# remote response never ends up in an error or a log line.
EMPTY_TOKEN = "empty_token"
TRANSPORT_ERROR = "transport_error"
BAD_STATUS = "bad_status"
MALFORMED_RESPONSE = "malformed_response"
MISSING_PERSONA = "missing_persona"


class AuthenticationError(Exception):
    """The identity service did not vouch for the presented token.

    reason is one of the fixed codes above. str(exc) is safe to log but is
    still not shown to users -- the web and API layers replace it with a
    generic message.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(f"token verification failed: {reason}")
        self.reason = reason


class AuthorizationError(Exception):
    """The request reached a protected handler without a persona in session."""

    def __init__(self, message: str = "Sign-in required.") -> None:
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class VerificationRequest:
    """A single opaque widget token, alive only for one verification call."""

    token: str

    def to_json(self) -> dict:
        return {"token": self.token}


@dataclass(frozen=True)
class VerificationResponse:
    """The part of the remote response we keep: the persona id."""

    persona_id: str

    @classmethod
    def from_json(cls, payload: object) -> VerificationResponse:
        """Extract persona.id from a decoded response body.

        Raises AuthenticationError(MALFORMED_RESPONSE) when the body is not a
        JSON object, and AuthenticationError(MISSING_PERSONA) when there is no
        persona object or its id is not a non-empty string.
        """
        if not isinstance(payload, dict):
            raise AuthenticationError(MALFORMED_RESPONSE)
        persona = payload.get("persona")
        if not isinstance(persona, dict):
            raise AuthenticationError(MISSING_PERSONA)
        persona_id = persona.get("id")
        if not isinstance(persona_id, str) or not persona_id:
            raise AuthenticationError(MISSING_PERSONA)
        return cls(persona_id=persona_id)


@dataclass(frozen=True)
class Verified:
    persona_id: str

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> str:
        return self.persona_id


@dataclass(frozen=True)
class Rejected:
    error: AuthenticationError

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self) -> str:
        raise self.error


VerificationResult = Union[Verified, Rejected]
