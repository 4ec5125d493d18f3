"""
Unit tests for the token inspection router.

Tests all token endpoints through the application:
- POST /tokens/decode
- POST /tokens/verify
- POST /tokens/inspect
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from jwt_inspector.core.config import settings
from jwt_inspector.main import app
from jwt_inspector.schemas.token import VerificationError, VerificationOutcome
from jwt_inspector.services.signature_verifier import get_signature_verifier
from token_factory import jwks_text, private_jwk, public_jwk, unsigned_token


SAMPLE_TOKEN = "eyJhbGciOiJIUzI1NiJ9.eyJzdWIiOiIxMjM0NTY3ODkwIn0.signature"
PREFIX = settings.API_V1_PREFIX


@pytest.fixture
def client() -> TestClient:
    """Create a test client for the FastAPI application."""
    return TestClient(app)


@pytest.fixture
def signed(sign_token, rsa_private_key):
    """A signed RS256 token and the JWK Set able to verify it."""
    token = sign_token({"sub": "user-1"}, rsa_private_key, "RS256", kid="key-1")
    return token, jwks_text(public_jwk(rsa_private_key, kid="key-1"))


# ==============================================================================
# POST /tokens/decode
# ==============================================================================


class TestDecodeEndpoint:
    def test_decode_returns_header_and_payload(self, client: TestClient) -> None:
        response = client.post(f"{PREFIX}/tokens/decode", json={"token": SAMPLE_TOKEN})

        assert response.status_code == 200
        data = response.json()
        assert data["header"] == {"alg": "HS256"}
        assert data["payload"] == {"sub": "1234567890"}
        assert data["signature"] == "signature"
        assert data["expiry"] == "no_expiry"

    def test_decode_reports_expiry(self, client: TestClient) -> None:
        token = unsigned_token({"alg": "RS256"}, {"exp": 946684800}, "sig")

        response = client.post(f"{PREFIX}/tokens/decode", json={"token": token})

        assert response.json()["expiry"] == "expired"

    def test_decode_malformed_token_is_422(self, client: TestClient) -> None:
        response = client.post(f"{PREFIX}/tokens/decode", json={"token": "abc"})

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["type"] == "http_exception"
        assert error["message"]["error"] == "malformed_token"
        assert error["message"]["error_description"] == "Invalid JWT format"

    def test_decode_invalid_json_is_422(self, client: TestClient) -> None:
        response = client.post(
            f"{PREFIX}/tokens/decode", json={"token": "aGVsbG8.aGVsbG8.sig"}
        )

        assert response.status_code == 422
        assert response.json()["error"]["message"]["error"] == "invalid_json"

    def test_decode_missing_body_field(self, client: TestClient) -> None:
        response = client.post(f"{PREFIX}/tokens/decode", json={})

        assert response.status_code == 422
        assert response.json()["error"]["type"] == "validation_error"

    def test_decode_rejects_oversized_token(self, client: TestClient) -> None:
        token = "a" * (settings.JWT_MAX_TOKEN_LENGTH + 1)

        response = client.post(f"{PREFIX}/tokens/decode", json={"token": token})

        assert response.status_code == 422
        details = response.json()["error"]["details"]
        assert details[0]["loc"] == ["body", "token"]
        assert "input" not in details[0]


# ==============================================================================
# POST /tokens/verify
# ==============================================================================


class TestVerifyEndpoint:
    def test_verify_success(self, client: TestClient, signed) -> None:
        token, key_set = signed

        response = client.post(f"{PREFIX}/tokens/verify", json={"token": token, "jwks": key_set})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "verified"
        assert data["algorithm"] == "RS256"
        assert data["key_id"] == "key-1"
        assert data["error"] is None
        assert data["message"] == (
            "Signature verified successfully (algorithm: RS256, key ID: key-1)"
        )

    def test_verify_invalid_key_set_is_a_value(self, client: TestClient, signed) -> None:
        token, _ = signed

        response = client.post(f"{PREFIX}/tokens/verify", json={"token": token, "jwks": "{}"})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "failed"
        assert data["error"] == "invalid_key_set"
        assert data["message"].startswith("Signature verification failed:")

    def test_verify_hmac_token_unsupported(self, client: TestClient, signed) -> None:
        _, key_set = signed

        response = client.post(
            f"{PREFIX}/tokens/verify", json={"token": SAMPLE_TOKEN, "jwks": key_set}
        )

        assert response.json()["error"] == "unsupported_algorithm"

    def test_verify_uses_injected_verifier(self, client: TestClient) -> None:
        mock_verifier = AsyncMock()
        mock_verifier.verify = AsyncMock(
            return_value=VerificationOutcome.failure(
                VerificationError.NO_MATCHING_KEY, "No key usable for RS256 found in JWKS"
            )
        )
        app.dependency_overrides[get_signature_verifier] = lambda: mock_verifier
        try:
            response = client.post(
                f"{PREFIX}/tokens/verify", json={"token": "t.t.t", "jwks": '{"keys": []}'}
            )
        finally:
            app.dependency_overrides.clear()

        assert response.json()["error"] == "no_matching_key"
        mock_verifier.verify.assert_awaited_once_with("t.t.t", '{"keys": []}')


# ==============================================================================
# POST /tokens/inspect
# ==============================================================================


class TestInspectEndpoint:
    def test_inspect_decode_and_verify(self, client: TestClient, signed) -> None:
        token, key_set = signed

        response = client.post(f"{PREFIX}/tokens/inspect", json={"token": token, "jwks": key_set})

        assert response.status_code == 200
        data = response.json()
        assert data["header"]["kid"] == "key-1"
        assert data["payload"] == {"sub": "user-1"}
        assert data["verification"]["status"] == "verified"
        assert data["error"] is None

    def test_inspect_without_jwks(self, client: TestClient) -> None:
        response = client.post(f"{PREFIX}/tokens/inspect", json={"token": SAMPLE_TOKEN})

        data = response.json()
        assert data["payload"] == {"sub": "1234567890"}
        assert data["verification"] is None

    def test_inspect_decode_failure_single_message(self, client: TestClient) -> None:
        response = client.post(
            f"{PREFIX}/tokens/inspect", json={"token": "abc", "jwks": '{"keys": []}'}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["error"] == "Invalid JWT format"
        assert data["header"] is None
        assert data["payload"] is None
        assert data["verification"] is None

    def test_inspect_empty_token(self, client: TestClient) -> None:
        response = client.post(f"{PREFIX}/tokens/inspect", json={})

        assert response.json()["error"] == "Please enter a JWT token"

    def test_inspect_expired_with_failed_verification(
        self, client: TestClient, sign_token, rsa_private_key, other_rsa_private_key
    ) -> None:
        token = sign_token({"sub": "u", "exp": 946684800}, rsa_private_key, "RS256", kid="k")
        key_set = jwks_text(public_jwk(other_rsa_private_key, kid="k"))

        response = client.post(f"{PREFIX}/tokens/inspect", json={"token": token, "jwks": key_set})

        data = response.json()
        assert data["payload"]["exp"] == 946684800
        assert data["payload_display"]["exp"].startswith("946684800 (")
        assert data["expiry"] == "expired"
        assert data["warning"] == "Warning: This token has expired"
        assert data["verification"]["error"] == "signature_mismatch"

    def test_inspect_with_private_jwk_is_not_a_server_error(
        self, client: TestClient, sign_token, rsa_private_key
    ) -> None:
        token = sign_token({"sub": "u"}, rsa_private_key, "RS256", kid="k")
        key_set = jwks_text(private_jwk(rsa_private_key, kid="k"))

        response = client.post(f"{PREFIX}/tokens/inspect", json={"token": token, "jwks": key_set})

        assert response.status_code == 200
        assert response.json()["verification"]["status"] == "verified"
