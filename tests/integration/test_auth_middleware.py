# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for bearer token authentication.

A bare FastAPI app with only AuthMiddleware installed echoes back the user
it sees, so no database or workflow service is involved.
"""

from datetime import timedelta

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from pydantic import SecretStr

from src.api.middleware.auth import (
    AuthMiddleware,
    CurrentUser,
    bearer_token,
    get_current_user,
)
from src.core.config import get_settings
from src.domains.auth.jwt import JWTManager

pytestmark = pytest.mark.integration

TEMPLATE_PATH = "/api/v1/class-applications/template"


@pytest.fixture
def jwt_manager(monkeypatch: pytest.MonkeyPatch) -> JWTManager:
    """Token manager sharing the secret the middleware will read."""
    monkeypatch.setenv("JWT_SECRET_KEY", "middleware-test-secret")
    return JWTManager(get_settings().jwt)


@pytest.fixture
def client(jwt_manager: JWTManager) -> TestClient:
    app = FastAPI()
    app.add_middleware(AuthMiddleware)

    @app.get("/api/v1/whoami")
    async def whoami(request: Request) -> dict:
        user = get_current_user(request)
        if user is None:
            return {"user": None}
        return {"user": {"id": user.id, "roles": list(user.roles), "admin": user.is_admin}}

    @app.get(TEMPLATE_PATH)
    async def template(request: Request) -> dict:
        return {"authenticated": get_current_user(request) is not None}

    return TestClient(app)


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestAuthMiddleware:
    """Tests for AuthMiddleware."""

    def test_valid_token_attaches_user(self, client: TestClient, jwt_manager: JWTManager) -> None:
        """Test that the token's account becomes the request user."""
        token = jwt_manager.create_access_token(user_id="owner-7", roles=["member"])

        response = client.get("/api/v1/whoami", headers=_auth(token))

        assert response.status_code == 200
        assert response.json()["user"] == {"id": "owner-7", "roles": ["member"], "admin": False}

    def test_admin_role_is_visible(self, client: TestClient, jwt_manager: JWTManager) -> None:
        """Test that operator tokens resolve to an admin user."""
        token = jwt_manager.create_access_token(user_id="ops-1", roles=["admin"])

        response = client.get("/api/v1/whoami", headers=_auth(token))

        assert response.json()["user"]["admin"] is True

    def test_public_path_ignores_token(self, client: TestClient, jwt_manager: JWTManager) -> None:
        """Test that the template download never resolves a user."""
        token = jwt_manager.create_access_token(user_id="owner-7")

        response = client.get(TEMPLATE_PATH, headers=_auth(token))

        assert response.json() == {"authenticated": False}

    def test_missing_header_is_anonymous(self, client: TestClient) -> None:
        """Test that requests without credentials still reach the route."""
        response = client.get("/api/v1/whoami")

        assert response.status_code == 200
        assert response.json() == {"user": None}

    def test_expired_token_is_anonymous(self, client: TestClient, jwt_manager: JWTManager) -> None:
        """Test that an expired token is treated as no token."""
        token = jwt_manager.create_access_token(
            user_id="owner-7",
            expires_delta=timedelta(minutes=-1),
        )

        response = client.get("/api/v1/whoami", headers=_auth(token))

        assert response.json() == {"user": None}

    def test_token_from_other_issuer_is_anonymous(self, client: TestClient) -> None:
        """Test that a token signed with another secret is ignored."""
        foreign_settings = get_settings().jwt.model_copy(
            update={"secret_key": SecretStr("another-issuer")}
        )
        token = JWTManager(foreign_settings).create_access_token(user_id="owner-7")

        response = client.get("/api/v1/whoami", headers=_auth(token))

        assert response.json() == {"user": None}

    @pytest.mark.parametrize("header", ["Bearer not-a-jwt", "Basic b3duZXI6cHc=", "Bearer"])
    def test_unusable_header_is_anonymous(self, client: TestClient, header: str) -> None:
        """Test that malformed credentials do not fail the request."""
        response = client.get("/api/v1/whoami", headers={"Authorization": header})

        assert response.status_code == 200
        assert response.json() == {"user": None}


class TestCurrentUser:
    """Tests for CurrentUser."""

    def test_from_payload(self, jwt_manager: JWTManager) -> None:
        """Test that claims are copied onto the user."""
        token = jwt_manager.create_access_token(
            user_id="owner-7",
            member_type="corporate",
            roles=["member", "reviewer"],
        )

        user = CurrentUser.from_payload(jwt_manager.decode_token(token))

        assert user.id == "owner-7"
        assert user.member_type == "corporate"
        assert user.roles == ("member", "reviewer")
        assert user.has_role("reviewer") is True
        assert user.is_admin is False

    def test_user_is_immutable(self) -> None:
        """Test that a resolved user cannot be altered by handlers."""
        user = CurrentUser(id="owner-7", roles=("member",))

        with pytest.raises(AttributeError):
            user.id = "owner-8"  # type: ignore[misc]


class TestBearerToken:
    """Tests for Authorization header parsing."""

    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ("Bearer abc.def.ghi", "abc.def.ghi"),
            ("bearer abc", "abc"),
            ("  Bearer   abc  ", "abc"),
            (None, None),
            ("", None),
            ("Bearer", None),
            ("Basic abc", None),
            ("Bearer abc def", None),
        ],
    )
    def test_parses_header(self, header: str | None, expected: str | None) -> None:
        """Test that only a single bearer credential is accepted."""
        assert bearer_token(header) == expected
