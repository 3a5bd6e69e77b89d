"""
auth/verifier.py -- Exchange a widget token for a verified persona id.

The widget on the home page hands the browser a short-lived opaque token.
The browser posts it to /signin; this module redeems it with the identity
service:

    POST {verify_url}
    Authorization: Basic base64(api_token + ":")
    Content-Type: application/json

    {"token": "<token>"}

A 200 response carrying {"persona": {"id": "..."}} is the only success. Any
other outcome -- transport error, timeout, non-200 status, body that is not
JSON, body without persona.id -- becomes Rejected(AuthenticationError).

Security notes:
  The raw response body is never logged or copied into the error. A
  misbehaving identity service could echo the token or internal detail back.

  Redirects are not followed. The Basic credential must only ever be sent to
  the configured endpoint.

  No retries and no caching. Tokens are single-use, so a retried POST would
  at best fail and at worst mask a replay.

Layer rule: no imports from api/, web/, or notes/. core/ is allowed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

import requests
from requests.auth import HTTPBasicAuth

from auth.models import (
    BAD_STATUS,
    EMPTY_TOKEN,
    MALFORMED_RESPONSE,
    TRANSPORT_ERROR,
    AuthenticationError,
    Rejected,
    VerificationRequest,
    VerificationResponse,
    VerificationResult,
    Verified,
)

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("inkwell.auth.verifier")


@dataclass(frozen=True)
class VerifierConfig:
    """Identity service settings, passed in explicitly rather than read globally.

    site_token travels with the config so the web layer can render the widget
    from the same object the verifier was built from.
    """

    site_token: str
    api_token: str
    verify_url: str
    timeout_seconds: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings) -> VerifierConfig:
        return cls(
            site_token=settings.site_token,
            api_token=settings.api_token,
            verify_url=settings.verify_url,
            timeout_seconds=settings.verify_timeout_seconds,
        )


class TokenVerifier:
    """Redeems widget tokens against the identity service.

    Usage:
        verifier = TokenVerifier(VerifierConfig.from_settings(get_settings()))
        result = verifier.verify(token)
        if result.ok:
            session.set("persona_id", result.persona_id)

    Pass a pre-built requests.Session to share a connection pool or to swap in
    a mock in tests.
    """

    def __init__(self, config: VerifierConfig, session: Optional[requests.Session] = None) -> None:
        self.config = config
        self._session = session or requests.Session()

    def verify(self, token: str) -> VerificationResult:
        """Verify one token. Exactly one outbound call unless the token is empty."""
        if not token or not token.strip():
            return self._reject(EMPTY_TOKEN)

        request = VerificationRequest(token=token)
        try:
            resp = self._session.post(
                self.config.verify_url,
                json=request.to_json(),
                auth=HTTPBasicAuth(self.config.api_token, ""),
                headers={"Accept": "application/json"},
                timeout=self.config.timeout_seconds,
                allow_redirects=False,
            )
        except requests.RequestException as e:
            # Class name only: the message can embed the URL.
            logger.warning("Identity service unreachable: %s", type(e).__name__)
            return self._reject(TRANSPORT_ERROR)

        if resp.status_code != 200:
            logger.warning("Identity service rejected token (HTTP %d)", resp.status_code)
            return self._reject(BAD_STATUS)

        try:
            payload = resp.json()
        except ValueError:
            # requests' JSONDecodeError subclasses ValueError
            logger.warning("Identity service response unusable (%s)", MALFORMED_RESPONSE)
            return self._reject(MALFORMED_RESPONSE)

        try:
            verified = VerificationResponse.from_json(payload)
        except AuthenticationError as e:
            logger.warning("Identity service response unusable (%s)", e.reason)
            return Rejected(error=e)

        return Verified(persona_id=verified.persona_id)

    def close(self) -> None:
        self._session.close()

    @staticmethod
    def _reject(reason: str) -> Rejected:
        return Rejected(error=AuthenticationError(reason))
