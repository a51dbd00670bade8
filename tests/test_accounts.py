"""
Tests for the member's own wallet account.

These tests verify:
  - GET /accounts/me returns the caller's account
  - The cached balance always matches the balance recomputed from the
    transaction history, through deposits, bonuses and purchases
  - Preferences can be changed and are validated
  - Admins are kept off member endpoints
"""

import pytest

MEMBER_PHONE = "0712345678"


class TestGetAccount:
    """Tests for GET /accounts/me."""

    async def test_get_own_account(self, authenticated_client):
        response = await authenticated_client.get("/accounts/me")
        assert response.status_code == 200
        data = response.json()
        assert data["username"] == "testuser"
        assert data["email"] == "testuser@example.com"
        assert data["phone"] == "254712345678"
        assert data["balance_cents"] == 0

    async def test_unauthenticated(self, client):
        response = await client.get("/accounts/me")
        assert response.status_code == 401

    async def test_admin_blocked_from_member_endpoints(self, admin_client):
        """Admins have no wallet and must use /admin/* instead."""
        response = await admin_client.get("/accounts/me")
        assert response.status_code == 403


class TestBalance:
    """Tests for GET /accounts/me/balance."""

    async def test_new_account_balance(self, authenticated_client):
        response = await authenticated_client.get("/accounts/me/balance")
        assert response.status_code == 200
        data = response.json()
        assert data["balance_cents"] == 0
        assert data["computed_balance_cents"] == 0
        assert data["match"] is True

    async def test_balance_matches_after_deposit_with_bonus(self, authenticated_client, fund):
        await fund(6000)

        data = (await authenticated_client.get("/accounts/me/balance")).json()
        assert data["balance_cents"] == 6600
        assert data["computed_balance_cents"] == 6600
        assert data["match"] is True

    async def test_balance_matches_after_purchase(self, authenticated_client, fund):
        await fund(6000)
        await authenticated_client.post(
            "/airtime/buy",
            json={"target_phone": MEMBER_PHONE, "amount_cents": 2000},
        )

        data = (await authenticated_client.get("/accounts/me/balance")).json()
        assert data["balance_cents"] == 4600
        assert data["match"] is True

    async def test_pending_deposit_not_counted(self, authenticated_client):
        """An STK push that hasn't been confirmed doesn't move the balance."""
        await authenticated_client.post(
            "/payments/deposits",
            json={"amount_cents": 5000, "phone": MEMBER_PHONE},
        )

        data = (await authenticated_client.get("/accounts/me/balance")).json()
        assert data["balance_cents"] == 0
        assert data["match"] is True


class TestPreferences:
    """Tests for PUT /accounts/me/preferences."""

    async def test_update_language_and_theme(self, authenticated_client):
        response = await authenticated_client.put(
            "/accounts/me/preferences",
            json={"language": "sw", "theme": "dark"},
        )
        assert response.status_code == 200
        assert response.json()["language"] == "sw"
        assert response.json()["theme"] == "dark"

        again = await authenticated_client.get("/accounts/me")
        assert again.json()["language"] == "sw"

    async def test_partial_update(self, authenticated_client):
        """Omitted fields are left unchanged."""
        response = await authenticated_client.put(
            "/accounts/me/preferences",
            json={"theme": "dark"},
        )
        assert response.json()["language"] == "en"
        assert response.json()["theme"] == "dark"

    async def test_unsupported_language(self, authenticated_client):
        response = await authenticated_client.put(
            "/accounts/me/preferences",
            json={"language": "fr"},
        )
        assert response.status_code == 422
