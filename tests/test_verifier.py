"""
tests/test_verifier.py -- Unit tests for auth/verifier.py.

The identity service is replaced by a scripted requests.Session mock, so
these tests cover every way a verification can fail without any network.

Coverage:
  - 200 + persona.id -> Verified
  - request shape: URL, JSON body, Basic auth with empty password, timeout,
    redirects disabled
  - non-200, malformed JSON, missing/empty/non-string persona.id, transport
    errors -> Rejected(AuthenticationError) with a fixed reason
  - empty tokens never reach the network
  - the remote body is never leaked into errors or logs
  - one call per verification, no caching
"""

from __future__ import annotations

import base64
import logging

import pytest
import requests
from requests.auth import HTTPBasicAuth

from auth.models import (
    BAD_STATUS,
    EMPTY_TOKEN,
    MALFORMED_RESPONSE,
    MISSING_PERSONA,
    TRANSPORT_ERROR,
    AuthenticationError,
    Rejected,
    Verified,
)
from auth.verifier import VerifierConfig
from core.config import Settings

VERIFY_URL = "https://identity.test/v1/verify"


class TestVerifySuccess:
    def test_valid_token_returns_persona(self, identity, verifier) -> None:
        identity.accept("p_123")
        result = verifier.verify("tok_valid")
        assert result == Verified(persona_id="p_123")
        assert result.ok
        assert result.unwrap() == "p_123"

    def test_extra_persona_fields_are_ignored(self, identity, verifier) -> None:
        identity.respond(200, {"persona": {"id": "p_9", "email": "x@example.com"}, "meta": {}})
        assert verifier.verify("tok").unwrap() == "p_9"

    def test_request_shape(self, identity, verifier) -> None:
        """One POST to the configured URL with the token as JSON and Basic auth."""
        identity.accept("p_123")
        verifier.verify("tok_valid")

        args, kwargs = identity.last_call()
        assert args == (VERIFY_URL,)
        assert kwargs["json"] == {"token": "tok_valid"}
        assert kwargs["auth"] == HTTPBasicAuth("test-api-token", "")
        assert kwargs["timeout"] == 5.0
        assert kwargs["allow_redirects"] is False

    def test_token_is_sent_unmodified(self, identity, verifier) -> None:
        identity.accept("p_123")
        verifier.verify(" tok_padded\n")
        _, kwargs = identity.last_call()
        assert kwargs["json"] == {"token": " tok_padded\n"}

    def test_basic_auth_header_encodes_api_token_with_empty_password(self, identity, verifier) -> None:
        identity.accept("p_123")
        verifier.verify("tok_valid")
        _, kwargs = identity.last_call()

        prepared = requests.Request("POST", VERIFY_URL, json=kwargs["json"], auth=kwargs["auth"]).prepare()
        expected = "Basic " + base64.b64encode(b"test-api-token:").decode("ascii")
        assert prepared.headers["Authorization"] == expected
        assert prepared.headers["Content-Type"] == "application/json"

    def test_each_verification_calls_remote_once(self, identity, verifier) -> None:
        """No result caching -- the same token is sent again if presented again."""
        identity.accept("p_123")
        verifier.verify("tok_valid")
        verifier.verify("tok_valid")
        assert identity.calls == 2


class TestVerifyFailure:
    def test_non_200_is_rejected(self, identity, verifier) -> None:
        identity.reject(401)
        result = verifier.verify("tok_bad")
        assert isinstance(result, Rejected)
        assert not result.ok
        assert result.error.reason == BAD_STATUS

    @pytest.mark.parametrize("status", [201, 302, 403, 500, 503])
    def test_any_status_other_than_200_is_rejected(self, identity, verifier, status) -> None:
        identity.respond(status, {"persona": {"id": "p_123"}})
        assert verifier.verify("tok").error.reason == BAD_STATUS

    def test_malformed_json_is_rejected(self, identity, verifier) -> None:
        identity.respond(200, requests.exceptions.JSONDecodeError("Expecting value", "<html>", 0))
        assert verifier.verify("tok").error.reason == MALFORMED_RESPONSE

    def test_json_array_body_is_rejected(self, identity, verifier) -> None:
        identity.respond(200, [{"persona": {"id": "p_123"}}])
        assert verifier.verify("tok").error.reason == MALFORMED_RESPONSE

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"persona": None},
            {"persona": "p_123"},
            {"persona": {}},
            {"persona": {"id": ""}},
            {"persona": {"id": 123}},
            {"id": "p_123"},
        ],
    )
    def test_missing_persona_id_is_rejected(self, identity, verifier, payload) -> None:
        identity.respond(200, payload)
        assert verifier.verify("tok").error.reason == MISSING_PERSONA

    @pytest.mark.parametrize(
        "exc",
        [
            requests.ConnectionError("connection refused"),
            requests.Timeout("read timed out"),
            requests.TooManyRedirects("loop"),
        ],
    )
    def test_transport_errors_are_rejected(self, identity, verifier, exc) -> None:
        identity.fail(exc)
        assert verifier.verify("tok").error.reason == TRANSPORT_ERROR

    @pytest.mark.parametrize("token", ["", "   "])
    def test_empty_token_never_reaches_remote(self, identity, verifier, token) -> None:
        result = verifier.verify(token)
        assert result.error.reason == EMPTY_TOKEN
        assert identity.calls == 0

    def test_unwrap_raises_authentication_error(self, identity, verifier) -> None:
        identity.reject(401)
        with pytest.raises(AuthenticationError) as excinfo:
            verifier.verify("tok_bad").unwrap()
        assert excinfo.value.reason == BAD_STATUS


class TestNoLeak:
    """The raw remote response must never surface in errors or logs."""

    def test_error_and_logs_do_not_contain_remote_body(self, identity, verifier, caplog) -> None:
        secret = "internal-trace-id-9f8e7d tok_bad"
        identity.reject(500, text=secret)
        with caplog.at_level(logging.DEBUG):
            result = verifier.verify("tok_bad")
        assert secret not in str(result.error)
        assert "9f8e7d" not in caplog.text
        assert "tok_bad" not in caplog.text

    def test_logs_do_not_contain_token_on_transport_error(self, identity, verifier, caplog) -> None:
        identity.fail(requests.ConnectionError("https://identity.test refused"))
        with caplog.at_level(logging.DEBUG):
            verifier.verify("tok_secret_value")
        assert "tok_secret_value" not in caplog.text


class TestVerifierConfig:
    def test_from_settings(self) -> None:
        settings = Settings(
            _env_file=None,
            secret_key="k" * 32,
            site_token="site",
            api_token="api",
            verify_url="https://identity.example/verify",
            verify_timeout_seconds=3.5,
        )
        config = VerifierConfig.from_settings(settings)
        assert config == VerifierConfig(
            site_token="site",
            api_token="api",
            verify_url="https://identity.example/verify",
            timeout_seconds=3.5,
        )
