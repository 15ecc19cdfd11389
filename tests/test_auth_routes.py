"""Integration tests for account API endpoints.

Tests:
- POST /api/auth/signup - Account creation, validation, duplicate email
- POST /api/auth/login - Credential check
- GET /api/auth/me - Bearer token authentication (missing, expired, tampered)
"""

from datetime import datetime, timedelta, timezone

import pytest

from genstudio.services.auth import create_access_token


@pytest.mark.asyncio
class TestSignup:
    """Test POST /api/auth/signup."""

    async def test_signup_returns_user_and_token(self, test_client):
        response = await test_client.post(
            "/api/auth/signup", json={"email": "alice@example.com", "password": "secret123"}
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "User created successfully"
        assert body["data"]["user"]["email"] == "alice@example.com"
        assert isinstance(body["data"]["user"]["id"], int)
        assert "created_at" in body["data"]["user"]
        assert "password_hash" not in body["data"]["user"]
        assert body["data"]["token"]

    async def test_duplicate_email_rejected(self, test_client, signup):
        await signup("alice@example.com")

        response = await test_client.post(
            "/api/auth/signup", json={"email": "alice@example.com", "password": "another1"}
        )

        assert response.status_code == 400
        body = response.json()
        assert body == {
            "success": False,
            "message": "User with this email already exists",
            "errorKind": "conflict",
        }

    async def test_email_is_case_sensitive(self, test_client, signup):
        await signup("alice@example.com")

        response = await test_client.post(
            "/api/auth/signup", json={"email": "Alice@example.com", "password": "secret123"}
        )

        assert response.status_code == 201

    async def test_invalid_email_rejected(self, test_client):
        response = await test_client.post(
            "/api/auth/signup", json={"email": "not-an-email", "password": "secret123"}
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid email format"
        assert response.json()["errorKind"] == "validation"

    async def test_short_password_rejected(self, test_client):
        response = await test_client.post(
            "/api/auth/signup", json={"email": "alice@example.com", "password": "12345"}
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Password must be at least 6 characters long"

    async def test_missing_password_rejected(self, test_client):
        response = await test_client.post("/api/auth/signup", json={"email": "alice@example.com"})

        assert response.status_code == 400
        assert response.json()["message"] == "Password is required"


@pytest.mark.asyncio
class TestLogin:
    """Test POST /api/auth/login."""

    async def test_login_with_valid_credentials(self, test_client, signup):
        await signup("alice@example.com", "secret123")

        response = await test_client.post(
            "/api/auth/login", json={"email": "alice@example.com", "password": "secret123"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Login successful"
        assert body["data"]["user"]["email"] == "alice@example.com"
        assert body["data"]["token"]

    async def test_wrong_password_and_unknown_email_look_the_same(self, test_client, signup):
        await signup("alice@example.com", "secret123")

        wrong_password = await test_client.post(
            "/api/auth/login", json={"email": "alice@example.com", "password": "wrong-pass"}
        )
        unknown_email = await test_client.post(
            "/api/auth/login", json={"email": "bob@example.com", "password": "secret123"}
        )

        assert wrong_password.status_code == 401
        assert unknown_email.status_code == 401
        assert wrong_password.json() == unknown_email.json()
        assert wrong_password.json()["message"] == "Invalid email or password"
        assert wrong_password.json()["errorKind"] == "authentication"

    async def test_empty_password_rejected(self, test_client):
        response = await test_client.post(
            "/api/auth/login", json={"email": "alice@example.com", "password": ""}
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Password is required"


@pytest.mark.asyncio
class TestMe:
    """Test GET /api/auth/me token handling."""

    async def test_returns_profile_for_valid_token(self, test_client, signup):
        headers = await signup("alice@example.com")

        response = await test_client.get("/api/auth/me", headers=headers)

        assert response.status_code == 200
        assert response.json()["data"]["user"]["email"] == "alice@example.com"

    async def test_missing_token(self, test_client):
        response = await test_client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.json()["message"] == "Access token required"

    async def test_non_bearer_scheme(self, test_client):
        response = await test_client.get("/api/auth/me", headers={"Authorization": "Basic abc"})

        assert response.status_code == 401
        assert response.json()["message"] == "Access token required"

    async def test_expired_token(self, test_client, signup, settings):
        await signup("alice@example.com")
        token = create_access_token(
            user_id=1,
            email="alice@example.com",
            secret=settings.jwt_secret,
            now=datetime.now(timezone.utc) - timedelta(days=8),
        )

        response = await test_client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Token expired"

    async def test_token_signed_with_other_secret(self, test_client, signup):
        await signup("alice@example.com")
        token = create_access_token(
            user_id=1, email="alice@example.com", secret="some-other-secret-0123456789abcdef"
        )

        response = await test_client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token"

    async def test_garbage_token(self, test_client):
        response = await test_client.get(
            "/api/auth/me", headers={"Authorization": "Bearer not.a.jwt"}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token"

    async def test_token_for_missing_user(self, test_client, settings):
        token = create_access_token(
            user_id=999, email="ghost@example.com", secret=settings.jwt_secret
        )

        response = await test_client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token"
