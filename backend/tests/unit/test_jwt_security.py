"""
Security Test Suite - JWT Authentication

Tests that the JWT verification in api/dependencies.py correctly:
- Rejects missing Authorization headers
- Rejects malformed tokens
- Rejects expired tokens
- Rejects tokens with invalid signatures
- Accepts properly signed tokens and exposes the admin role claim
"""

import time

import jwt
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from marketplace.api.dependencies import CurrentUser, get_current_user
from marketplace.config.settings import Settings, get_settings


SECRET = "unit-jwt-secret"


# ---------------------------------------------------------------------------
# Minimal app that uses the real dependency
# ---------------------------------------------------------------------------

test_app = FastAPI()
test_app.dependency_overrides[get_settings] = lambda: Settings(_env_file=None, jwt_secret=SECRET)


@test_app.get("/protected")
async def protected_endpoint(user: CurrentUser = Depends(get_current_user)):
    return {"user_id": user.id, "is_admin": user.is_admin}


client = TestClient(test_app, raise_server_exceptions=False)


def _token(payload: dict, key: str = SECRET) -> str:
    return jwt.encode(payload, key, algorithm="HS256")


# ---------------------------------------------------------------------------
# Tests: rejection scenarios
# ---------------------------------------------------------------------------


class TestJWTRejection:
    """Verify that invalid/missing JWTs are rejected with 401."""

    def test_no_auth_header(self):
        resp = client.get("/protected")
        assert resp.status_code == 401

    def test_malformed_scheme(self):
        resp = client.get("/protected", headers={"Authorization": "Basic abc123"})
        assert resp.status_code == 401

    def test_garbage_token(self):
        resp = client.get("/protected", headers={"Authorization": "Bearer not.a.jwt"})
        assert resp.status_code == 401

    def test_wrong_key(self):
        token = _token({"sub": "user_1", "exp": int(time.time()) + 3600}, key="other-secret")
        resp = client.get("/protected", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    def test_expired_token(self):
        token = _token({"sub": "user_1", "exp": int(time.time()) - 10})
        resp = client.get("/protected", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Token has expired"

    def test_missing_sub(self):
        token = _token({"exp": int(time.time()) + 3600})
        resp = client.get("/protected", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Tests: acceptance
# ---------------------------------------------------------------------------


class TestJWTAcceptance:

    def test_valid_token(self):
        token = _token({"sub": "user_1", "exp": int(time.time()) + 3600})
        resp = client.get("/protected", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json() == {"user_id": "user_1", "is_admin": False}

    def test_admin_role_claim(self):
        token = _token({"sub": "user_2", "role": "admin", "exp": int(time.time()) + 3600})
        resp = client.get("/protected", headers={"Authorization": f"Bearer {token}"})
        assert resp.json()["is_admin"] is True
