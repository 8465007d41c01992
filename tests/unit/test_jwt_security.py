"""
Security Test Suite - JWT Authentication

Tests that the bearer-token dependency in api/dependencies.py:
- Rejects missing Authorization headers
- Rejects malformed, expired and wrongly signed tokens
- Rejects tokens for another audience or issuer
- Accepts HS256 tokens signed with the project secret
- Accepts ES256 tokens verified through JWKS (mocked)
"""

import time
from unittest.mock import MagicMock

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import ec
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from braindump.api.dependencies import get_current_user, get_current_user_id
from braindump.domain.auth import AuthenticatedUser
from braindump.infrastructure.auth.jwt_verifier import TokenVerifier

from conftest import TEST_JWT_SECRET, TEST_SUPABASE_URL, make_settings, make_token


USER_ID = "aaaaaaaa-bbbb-cccc-dddd-eeeeeeeeeeee"


# ---------------------------------------------------------------------------
# Minimal app that uses the real dependency
# ---------------------------------------------------------------------------

def build_app(verifier: TokenVerifier) -> FastAPI:
    test_app = FastAPI()
    test_app.state.token_verifier = verifier

    @test_app.get("/protected")
    async def protected_endpoint(user_id=Depends(get_current_user_id)):
        return {"user_id": str(user_id)}

    @test_app.get("/me")
    async def me_endpoint(user: AuthenticatedUser = Depends(get_current_user)):
        return {"email": user.email}

    return test_app


@pytest.fixture
def jwks_client():
    mock = MagicMock()
    mock.get_signing_key_from_jwt.side_effect = jwt.exceptions.PyJWKClientError("no keys")
    return mock


@pytest.fixture
def client(jwks_client):
    verifier = TokenVerifier(make_settings(), jwks_client=jwks_client)
    return TestClient(build_app(verifier), raise_server_exceptions=False)


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def claims(**overrides) -> dict:
    payload = {
        "sub": USER_ID,
        "aud": "authenticated",
        "iss": f"{TEST_SUPABASE_URL}/auth/v1",
        "exp": int(time.time()) + 3600,
    }
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------------------
# Tests: rejection scenarios
# ---------------------------------------------------------------------------

class TestJWTRejection:
    """Verify that invalid/missing JWTs are rejected with 401."""

    def test_no_auth_header(self, client):
        resp = client.get("/protected")
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Missing authorization token"

    def test_empty_bearer(self, client):
        resp = client.get("/protected", headers={"Authorization": "Bearer "})
        assert resp.status_code == 401

    def test_malformed_scheme(self, client):
        resp = client.get("/protected", headers={"Authorization": "Basic abc123"})
        assert resp.status_code == 401

    def test_garbage_token(self, client):
        resp = client.get("/protected", headers=bearer("not.a.jwt"))
        assert resp.status_code == 401

    def test_expired_token(self, client):
        token = jwt.encode(claims(exp=int(time.time()) - 60), TEST_JWT_SECRET, algorithm="HS256")
        resp = client.get("/protected", headers=bearer(token))
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Token has expired"

    def test_wrong_secret(self, client):
        token = make_token(USER_ID, secret="another-secret-that-is-long-enough-too")
        resp = client.get("/protected", headers=bearer(token))
        assert resp.status_code == 401

    def test_wrong_audience(self, client):
        token = jwt.encode(claims(aud="anon"), TEST_JWT_SECRET, algorithm="HS256")
        assert client.get("/protected", headers=bearer(token)).status_code == 401

    def test_wrong_issuer(self, client):
        token = jwt.encode(claims(iss="https://evil.example.com/auth/v1"), TEST_JWT_SECRET, algorithm="HS256")
        assert client.get("/protected", headers=bearer(token)).status_code == 401

    def test_subject_not_uuid(self, client):
        token = jwt.encode(claims(sub="service-role"), TEST_JWT_SECRET, algorithm="HS256")
        assert client.get("/protected", headers=bearer(token)).status_code == 401

    def test_no_secret_and_no_jwks(self, jwks_client):
        verifier = TokenVerifier(make_settings(supabase_jwt_secret=None), jwks_client=jwks_client)
        client = TestClient(build_app(verifier), raise_server_exceptions=False)
        resp = client.get("/protected", headers=bearer(make_token(USER_ID)))
        assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Tests: acceptance scenarios
# ---------------------------------------------------------------------------

class TestJWTAcceptance:

    def test_hs256_token(self, client, jwks_client):
        resp = client.get("/protected", headers=bearer(make_token(USER_ID)))
        assert resp.status_code == 200
        assert resp.json() == {"user_id": USER_ID}
        # HS256 header skips the key fetch
        jwks_client.get_signing_key_from_jwt.assert_not_called()

    def test_email_claim_is_exposed(self, client):
        resp = client.get("/me", headers=bearer(make_token(USER_ID, email="jane@example.com")))
        assert resp.json() == {"email": "jane@example.com"}

    def test_es256_token_via_jwks(self):
        private_key = ec.generate_private_key(ec.SECP256R1())
        token = jwt.encode(claims(), private_key, algorithm="ES256", headers={"kid": "key-1"})

        jwks_client = MagicMock()
        jwks_client.get_signing_key_from_jwt.return_value = MagicMock(key=private_key.public_key())
        verifier = TokenVerifier(make_settings(supabase_jwt_secret=None), jwks_client=jwks_client)
        client = TestClient(build_app(verifier), raise_server_exceptions=False)

        resp = client.get("/protected", headers=bearer(token))

        assert resp.status_code == 200
        assert resp.json() == {"user_id": USER_ID}
        jwks_client.get_signing_key_from_jwt.assert_called_once_with(token)
