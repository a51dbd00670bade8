"""
Tests for transaction history and PDF downloads.

These tests verify:
  - The member's history lists newest first and filters by status and kind
  - The statement and receipt endpoints return real PDF documents
"""

import uuid

import pytest

MEMBER_PHONE = "0712345678"


class TestTransactionHistory:
    async def test_newest_first(self, authenticated_client, fund):
        await fund(6000)
        await authenticated_client.post(
            "/airtime/buy",
            json={"target_phone": MEMBER_PHONE, "amount_cents": 1000},
        )

        response = await authenticated_client.get("/transactions")
        assert [t["kind"] for t in response.json()] == ["airtime_purchase", "deposit"]

    async def test_filters(self, authenticated_client, fund):
        await fund(6000)
        await authenticated_client.post(
            "/payments/deposits",
            json={"amount_cents": 2000, "phone": MEMBER_PHONE},
        )

        pending = await authenticated_client.get("/transactions", params={"status": "pending"})
        assert [t["amount_cents"] for t in pending.json()] == [2000]

        deposits = await authenticated_client.get("/transactions", params={"kind": "deposit"})
        assert len(deposits.json()) == 2

    async def test_pagination(self, authenticated_client, fund):
        for amount in (1000, 2000, 3000):
            await fund(amount)

        page = await authenticated_client.get("/transactions", params={"limit": 2, "offset": 1})
        assert [t["amount_cents"] for t in page.json()] == [2000, 1000]

    async def test_unknown_transaction(self, authenticated_client):
        response = await authenticated_client.get(f"/transactions/{uuid.uuid4()}")
        assert response.status_code == 404


class TestPdfDownloads:
    async def test_statement(self, authenticated_client, fund):
        await fund(6000)

        response = await authenticated_client.get("/transactions/statement.pdf")
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert 'filename="transactions_testuser.pdf"' in response.headers["content-disposition"]
        assert response.content.startswith(b"%PDF")

    async def test_empty_statement(self, authenticated_client):
        response = await authenticated_client.get("/transactions/statement.pdf")
        assert response.status_code == 200
        assert response.content.startswith(b"%PDF")

    async def test_receipt(self, authenticated_client, fund):
        data = await fund(6000)

        response = await authenticated_client.get(
            f"/transactions/{data['transaction_id']}/receipt.pdf"
        )
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert data["reference"] in response.headers["content-disposition"]
        assert response.content.startswith(b"%PDF")
