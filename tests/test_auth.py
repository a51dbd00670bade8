"""
Tests for authentication — signup and login.

These tests verify:
  - Signup creates a user, a zero-balance wallet and a welcome notification
  - Duplicate emails and usernames are rejected with 409
  - Phone numbers are normalised to 254XXXXXXXXX
  - Input validation (password length, email format, username pattern)
  - Login returns a token that works on protected endpoints
  - Wrong password and unknown email give the same 401
"""

import uuid
from datetime import timedelta

import pytest
from jose import jwt

from airtime_api.config import settings
from airtime_api.security import issue_session_token, read_session_token


def _signup_body(**overrides):
    body = {
        "email": "newuser@example.com",
        "password": "StrongPass99!",
        "username": "newuser",
        "phone": "0712345678",
    }
    body.update(overrides)
    return body


# ---------------------------------------------------------------------------
# Signup Tests
# ---------------------------------------------------------------------------

class TestSignup:
    """Tests for POST /auth/signup."""

    async def test_signup_success(self, client):
        """A valid signup returns 201 with a token and the new ids."""
        response = await client.post("/auth/signup", json=_signup_body())
        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "newuser@example.com"
        assert data["username"] == "newuser"
        assert data["user_type"] == "member"
        assert data["token_type"] == "bearer"
        assert "token" in data
        assert "account_id" in data

    async def test_signup_opens_empty_wallet(self, client):
        """The new account starts active with a zero balance."""
        response = await client.post("/auth/signup", json=_signup_body())
        headers = {"Authorization": f"Bearer {response.json()['token']}"}

        account = await client.get("/accounts/me", headers=headers)
        assert account.status_code == 200
        data = account.json()
        assert data["balance_cents"] == 0
        assert data["status"] == "active"
        assert data["language"] == "en"

    async def test_signup_normalises_phone(self, client):
        """Local, international and +254 formats all store as 254XXXXXXXXX."""
        response = await client.post(
            "/auth/signup", json=_signup_body(phone="+254 712 345 678")
        )
        headers = {"Authorization": f"Bearer {response.json()['token']}"}

        account = await client.get("/accounts/me", headers=headers)
        assert account.json()["phone"] == "254712345678"

    async def test_signup_sends_welcome_notification(self, client):
        response = await client.post("/auth/signup", json=_signup_body())
        headers = {"Authorization": f"Bearer {response.json()['token']}"}

        notifications = await client.get("/notifications", headers=headers)
        titles = [n["title"] for n in notifications.json()]
        assert titles == ["Welcome!"]

    async def test_signup_duplicate_email(self, client):
        """Signing up twice with the same email returns 409."""
        response1 = await client.post("/auth/signup", json=_signup_body())
        assert response1.status_code == 201

        response2 = await client.post(
            "/auth/signup", json=_signup_body(username="otheruser")
        )
        assert response2.status_code == 409
        assert response2.json()["error_type"] == "duplicate_email"
        assert "already registered" in response2.json()["detail"]

    async def test_signup_duplicate_username(self, client):
        """Usernames are unique across members."""
        await client.post("/auth/signup", json=_signup_body())

        response = await client.post(
            "/auth/signup", json=_signup_body(email="other@example.com")
        )
        assert response.status_code == 409
        assert response.json()["error_type"] == "duplicate_username"

    async def test_signup_short_password(self, client):
        """Passwords shorter than 8 characters should be rejected."""
        response = await client.post("/auth/signup", json=_signup_body(password="short"))
        assert response.status_code == 422

    async def test_signup_invalid_email(self, client):
        response = await client.post("/auth/signup", json=_signup_body(email="not-an-email"))
        assert response.status_code == 422

    async def test_signup_invalid_username(self, client):
        """Usernames are letters, digits, dots and underscores only."""
        response = await client.post("/auth/signup", json=_signup_body(username="no spaces!"))
        assert response.status_code == 422

    async def test_signup_invalid_phone(self, client):
        response = await client.post("/auth/signup", json=_signup_body(phone="12345"))
        assert response.status_code == 422

    async def test_signup_missing_fields(self, client):
        """Missing required fields should return 422."""
        response = await client.post("/auth/signup", json={"email": "missing@example.com"})
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Login Tests
# ---------------------------------------------------------------------------

class TestLogin:
    """Tests for POST /auth/login."""

    async def test_login_success(self, client):
        """Login with correct credentials should return a token."""
        await client.post("/auth/signup", json=_signup_body())

        response = await client.post(
            "/auth/login",
            json={"email": "newuser@example.com", "password": "StrongPass99!"},
        )
        assert response.status_code == 200
        data = response.json()
        assert "token" in data
        assert data["token_type"] == "bearer"

    async def test_login_stamps_last_login(self, client):
        signup = await client.post("/auth/signup", json=_signup_body())
        headers = {"Authorization": f"Bearer {signup.json()['token']}"}

        before = await client.get("/accounts/me", headers=headers)
        assert before.json()["last_login_at"] is None

        await client.post(
            "/auth/login",
            json={"email": "newuser@example.com", "password": "StrongPass99!"},
        )

        after = await client.get("/accounts/me", headers=headers)
        assert after.json()["last_login_at"] is not None

    async def test_login_wrong_password(self, client):
        """Login with wrong password should return 401."""
        await client.post("/auth/signup", json=_signup_body())

        response = await client.post(
            "/auth/login",
            json={"email": "newuser@example.com", "password": "WrongPassword!"},
        )
        assert response.status_code == 401
        assert "Invalid email or password" in response.json()["detail"]

    async def test_login_nonexistent_email(self, client):
        """Login with an unknown email should return the same 401.

        The error message must be identical to the wrong-password case to
        prevent user enumeration.
        """
        response = await client.post(
            "/auth/login",
            json={"email": "nobody@example.com", "password": "SomePassword123!"},
        )
        assert response.status_code == 401
        assert "Invalid email or password" in response.json()["detail"]

    async def test_login_token_works_for_protected_endpoint(self, client):
        await client.post("/auth/signup", json=_signup_body())
        login = await client.post(
            "/auth/login",
            json={"email": "newuser@example.com", "password": "StrongPass99!"},
        )
        token = login.json()["token"]

        response = await client.get(
            "/accounts/me",
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 200
        assert response.json()["username"] == "newuser"

    async def test_invalid_token_rejected(self, client):
        response = await client.get(
            "/accounts/me",
            headers={"Authorization": "Bearer not-a-real-token"},
        )
        assert response.status_code == 401

    async def test_expired_token_rejected(self, client):
        signup = await client.post("/auth/signup", json=_signup_body())
        user_id = uuid.UUID(signup.json()["user_id"])
        token = issue_session_token(user_id, "member", expires_in=timedelta(minutes=-1))

        response = await client.get(
            "/accounts/me",
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 401


class TestSessionTokens:
    async def test_role_claim(self, client):
        signup = await client.post("/auth/signup", json=_signup_body())
        claims = jwt.get_unverified_claims(signup.json()["token"])
        assert claims["role"] == "member"
        assert claims["sub"] == signup.json()["user_id"]

    def test_round_trip_user_id(self):
        user_id = uuid.uuid4()
        assert read_session_token(issue_session_token(user_id, "admin")) == user_id

    def test_token_without_subject(self):
        token = jwt.encode({"role": "member"}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
        with pytest.raises(ValueError):
            read_session_token(token)
