"""
Tests for the admin console.

These tests verify:
  - Listing and inspecting member accounts
  - Suspending and reactivating accounts
  - Balance adjustments in both directions, never below zero
  - Settings: listing defaults, updating, rejecting invalid values
  - Targeted and broadcast notifications
  - Transaction listing with filters, and dashboard stats
"""

import uuid

import pytest

MEMBER_PHONE = "0712345678"


async def _account_id(client, headers):
    return (await client.get("/accounts/me", headers=headers)).json()["id"]


class TestAdminAccounts:
    """Tests for /admin/users."""

    async def test_list_accounts(self, client, member_headers, second_member_headers, admin_headers):
        response = await client.get("/admin/users", headers=admin_headers)
        assert response.status_code == 200
        usernames = {a["username"] for a in response.json()}
        # The admin signed up like everyone else before being promoted
        assert usernames == {"testuser", "seconduser", "admin"}

    async def test_get_account(self, client, member_headers, admin_headers):
        account_id = await _account_id(client, member_headers)

        response = await client.get(f"/admin/users/{account_id}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["username"] == "testuser"

    async def test_get_unknown_account(self, admin_client):
        response = await admin_client.get(f"/admin/users/{uuid.uuid4()}")
        assert response.status_code == 404

    async def test_suspend_and_reactivate(self, client, member_headers, admin_headers):
        account_id = await _account_id(client, member_headers)

        suspended = await client.put(
            f"/admin/users/{account_id}/status",
            json={"status": "suspended"},
            headers=admin_headers,
        )
        assert suspended.json()["status"] == "suspended"

        listed = await client.get(
            "/admin/users", params={"status": "suspended"}, headers=admin_headers
        )
        assert [a["id"] for a in listed.json()] == [account_id]

        reactivated = await client.put(
            f"/admin/users/{account_id}/status",
            json={"status": "active"},
            headers=admin_headers,
        )
        assert reactivated.json()["status"] == "active"

    async def test_invalid_status(self, client, member_headers, admin_headers):
        account_id = await _account_id(client, member_headers)

        response = await client.put(
            f"/admin/users/{account_id}/status",
            json={"status": "deleted"},
            headers=admin_headers,
        )
        assert response.status_code == 422


class TestBalanceAdjustment:
    """Tests for PUT /admin/users/{id}/balance."""

    async def test_credit(self, client, member_headers, admin_headers):
        account_id = await _account_id(client, member_headers)

        response = await client.put(
            f"/admin/users/{account_id}/balance",
            json={"amount_cents": 2500, "reason": "Promo refund"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["kind"] == "adjustment"
        assert data["direction"] == "credit"
        assert data["amount_cents"] == 2500
        assert data["status"] == "success"
        assert data["description"] == "Promo refund"
        assert data["reference"].startswith("ADJ-")

        balance = await client.get(f"/admin/users/{account_id}/balance", headers=admin_headers)
        assert balance.json()["balance_cents"] == 2500
        assert balance.json()["match"] is True

    async def test_debit(self, client, member_headers, admin_headers, fund):
        await fund(6000, headers=member_headers)
        account_id = await _account_id(client, member_headers)

        response = await client.put(
            f"/admin/users/{account_id}/balance",
            json={"amount_cents": -600},
            headers=admin_headers,
        )
        assert response.json()["direction"] == "debit"
        assert response.json()["amount_cents"] == 600

        balance = await client.get(f"/admin/users/{account_id}/balance", headers=admin_headers)
        assert balance.json()["balance_cents"] == 6000
        assert balance.json()["match"] is True

    async def test_debit_below_zero_refused(self, client, member_headers, admin_headers):
        account_id = await _account_id(client, member_headers)

        response = await client.put(
            f"/admin/users/{account_id}/balance",
            json={"amount_cents": -100},
            headers=admin_headers,
        )
        assert response.status_code == 422
        assert response.json()["error_type"] == "insufficient_funds"

        transactions = await client.get("/transactions", headers=member_headers)
        assert transactions.json() == []

    async def test_zero_refused(self, client, member_headers, admin_headers):
        account_id = await _account_id(client, member_headers)

        response = await client.put(
            f"/admin/users/{account_id}/balance",
            json={"amount_cents": 0},
            headers=admin_headers,
        )
        assert response.status_code == 422

    async def test_unknown_account(self, admin_client):
        response = await admin_client.put(
            f"/admin/users/{uuid.uuid4()}/balance",
            json={"amount_cents": 100},
        )
        assert response.status_code == 404


class TestSettings:
    """Tests for /admin/settings."""

    async def test_list_defaults(self, admin_client):
        response = await admin_client.get("/admin/settings")
        assert response.status_code == 200
        values = {s["key"]: s["value"] for s in response.json()}
        assert values["deposit_bonus_threshold"] == "50"
        assert values["deposit_bonus_amount"] == "6"
        assert values["airtime_discount_rate"] == "10"
        assert values["airtime_to_cash_enabled"] == "false"

    async def test_update(self, admin_client):
        response = await admin_client.put(
            "/admin/settings/airtime_discount_rate",
            json={"value": "12.5"},
        )
        assert response.status_code == 200
        assert response.json()["value"] == "12.5"

        listed = await admin_client.get("/admin/settings")
        values = {s["key"]: s["value"] for s in listed.json()}
        assert values["airtime_discount_rate"] == "12.5"

    async def test_update_twice(self, admin_client):
        await admin_client.put("/admin/settings/deposit_bonus_amount", json={"value": "8"})
        response = await admin_client.put("/admin/settings/deposit_bonus_amount", json={"value": "9"})
        assert response.json()["value"] == "9"

    async def test_unknown_key(self, admin_client):
        response = await admin_client.put("/admin/settings/free_money", json={"value": "1"})
        assert response.status_code == 422

    async def test_unparseable_value(self, admin_client):
        response = await admin_client.put(
            "/admin/settings/deposit_bonus_amount",
            json={"value": "six"},
        )
        assert response.status_code == 422

    async def test_rate_out_of_range(self, admin_client):
        response = await admin_client.put(
            "/admin/settings/airtime_discount_rate",
            json={"value": "150"},
        )
        assert response.status_code == 422

    async def test_negative_value(self, admin_client):
        response = await admin_client.put(
            "/admin/settings/deposit_bonus_amount",
            json={"value": "-1"},
        )
        assert response.status_code == 422


class TestNotifications:
    """Tests for POST /admin/notifications and the member inbox."""

    async def test_targeted(self, client, member_headers, second_member_headers, admin_headers):
        account_id = await _account_id(client, member_headers)

        response = await client.post(
            "/admin/notifications",
            json={"account_id": account_id, "title": "Hello", "message": "Just you"},
            headers=admin_headers,
        )
        assert response.status_code == 201

        mine = await client.get("/notifications", headers=member_headers)
        theirs = await client.get("/notifications", headers=second_member_headers)
        assert "Hello" in [n["title"] for n in mine.json()]
        assert "Hello" not in [n["title"] for n in theirs.json()]

    async def test_broadcast(self, client, member_headers, second_member_headers, admin_headers):
        response = await client.post(
            "/admin/notifications",
            json={"title": "Maintenance", "message": "Back soon", "level": "warning"},
            headers=admin_headers,
        )
        assert response.json()["account_id"] is None

        for headers in (member_headers, second_member_headers):
            inbox = await client.get("/notifications", headers=headers)
            assert inbox.json()[0]["title"] == "Maintenance"

    async def test_unknown_recipient(self, admin_client):
        response = await admin_client.post(
            "/admin/notifications",
            json={"account_id": str(uuid.uuid4()), "title": "Hi", "message": "There"},
        )
        assert response.status_code == 404

    async def test_mark_read(self, authenticated_client):
        [welcome] = (await authenticated_client.get("/notifications")).json()
        assert welcome["is_read"] is False

        response = await authenticated_client.put(f"/notifications/{welcome['id']}/read")
        assert response.status_code == 200
        assert response.json()["is_read"] is True

    async def test_cannot_mark_others_read(self, client, member_headers, second_member_headers):
        [welcome] = (await client.get("/notifications", headers=member_headers)).json()

        response = await client.put(
            f"/notifications/{welcome['id']}/read", headers=second_member_headers
        )
        assert response.status_code == 403

    async def test_broadcast_read_state_unchanged(self, client, member_headers, admin_headers):
        broadcast = (await client.post(
            "/admin/notifications",
            json={"title": "News", "message": "For everyone"},
            headers=admin_headers,
        )).json()

        response = await client.put(
            f"/notifications/{broadcast['id']}/read", headers=member_headers
        )
        assert response.status_code == 200
        assert response.json()["is_read"] is False


class TestAdminTransactions:
    """Tests for /admin/transactions and /admin/stats."""

    async def test_list_all_with_filters(
        self, client, member_headers, second_member_headers, admin_headers, fund
    ):
        await fund(6000, headers=member_headers)
        await fund(2000, headers=second_member_headers)
        await client.post(
            "/airtime/buy",
            json={"target_phone": MEMBER_PHONE, "amount_cents": 1000},
            headers=member_headers,
        )

        everything = await client.get("/admin/transactions", headers=admin_headers)
        assert len(everything.json()) == 3

        deposits = await client.get(
            "/admin/transactions", params={"kind": "deposit"}, headers=admin_headers
        )
        assert len(deposits.json()) == 2

        limited = await client.get(
            "/admin/transactions", params={"limit": 1}, headers=admin_headers
        )
        assert len(limited.json()) == 1

    async def test_get_unknown_transaction(self, admin_client):
        response = await admin_client.get(f"/admin/transactions/{uuid.uuid4()}")
        assert response.status_code == 404

    async def test_stats(self, client, member_headers, admin_headers, fund):
        await fund(6000, headers=member_headers)
        await client.post(
            "/airtime/buy",
            json={"target_phone": MEMBER_PHONE, "amount_cents": 5000},
            headers=member_headers,
        )

        response = await client.get("/admin/stats", headers=admin_headers)
        assert response.status_code == 200
        assert response.json() == {
            "total_users": 2,
            "total_deposits_cents": 6000,
            "total_airtime_cents": 5000,
            "total_balance_cents": 1600,
        }
