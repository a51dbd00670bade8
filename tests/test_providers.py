"""
Tests for the PayNecta and Statum HTTP adapters.

The adapters are exercised against httpx.MockTransport, so these tests check
the exact requests sent and how every kind of response maps onto a
ProviderResult. Network errors must come back as UNAVAILABLE, never raise.
"""

import json

import httpx
import pytest

from airtime_api.providers import PayNectaProvider, ProviderState, StatumProvider
from airtime_api.providers.paynecta import map_payment_status


def _paynecta(handler):
    return PayNectaProvider(
        base_url="https://paynecta.test/api/v1",
        api_key="pk_test",
        email="ops@example.com",
        transport=httpx.MockTransport(handler),
    )


def _statum(handler):
    return StatumProvider(
        base_url="https://statum.test/api/v2",
        consumer_key="key",
        consumer_secret="secret",
        transport=httpx.MockTransport(handler),
    )


class TestPayNectaInitiate:
    async def test_request_shape(self):
        captured = {}

        def handler(request):
            captured["url"] = str(request.url)
            captured["headers"] = request.headers
            captured["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={"success": True, "data": {"checkout_request_id": "ws_CO_123"}},
            )

        provider = _paynecta(handler)
        result = await provider.initiate(
            "254712345678", 6050, "DEP-abc", "https://api.test/callback/paynecta"
        )
        await provider.close()

        assert captured["url"] == "https://paynecta.test/api/v1/payments/initialize"
        assert captured["headers"]["X-API-Key"] == "pk_test"
        assert captured["headers"]["X-User-Email"] == "ops@example.com"
        assert captured["body"] == {
            "phone": "254712345678",
            "amount": 60.5,
            "reference": "DEP-abc",
            "callback_url": "https://api.test/callback/paynecta",
        }
        assert result.state == ProviderState.PENDING
        assert result.correlation_id == "ws_CO_123"

    async def test_declined(self):
        def handler(request):
            return httpx.Response(400, json={"success": False, "message": "Invalid phone"})

        provider = _paynecta(handler)
        result = await provider.initiate("254700000000", 1000, "DEP-x", "https://cb")
        await provider.close()

        assert result.state == ProviderState.FAILED
        assert result.message == "Invalid phone"

    async def test_transport_error_is_unavailable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        provider = _paynecta(handler)
        result = await provider.initiate("254700000000", 1000, "DEP-x", "https://cb")
        await provider.close()

        assert result.state == ProviderState.UNAVAILABLE
        assert "connection refused" in result.message

    async def test_non_json_response_is_unavailable(self):
        def handler(request):
            return httpx.Response(502, text="<html>Bad Gateway</html>")

        provider = _paynecta(handler)
        result = await provider.initiate("254700000000", 1000, "DEP-x", "https://cb")
        await provider.close()

        assert result.state == ProviderState.UNAVAILABLE


class TestPayNectaQuery:
    async def test_completed(self):
        def handler(request):
            assert request.url.path == "/api/v1/payments/query/ws_CO_123"
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "data": {"status": "completed", "mpesa_receipt_number": "QK12ABC3XY"},
                },
            )

        provider = _paynecta(handler)
        result = await provider.query("ws_CO_123")
        await provider.close()

        assert result.state == ProviderState.SUCCESS
        assert result.receipt_code == "QK12ABC3XY"

    async def test_timeout_is_unavailable(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out")

        provider = _paynecta(handler)
        result = await provider.query("ws_CO_123")
        await provider.close()

        assert result.state == ProviderState.UNAVAILABLE


class TestPaymentStatusMapping:
    def test_success_states(self):
        for status in ("success", "completed", "Successful", " COMPLETED "):
            assert map_payment_status(status) == ProviderState.SUCCESS

    def test_failed_states(self):
        for status in ("failed", "cancelled", "timeout", "expired"):
            assert map_payment_status(status) == ProviderState.FAILED

    def test_anything_else_is_pending(self):
        for status in ("processing", "queued", "", None):
            assert map_payment_status(status) == ProviderState.PENDING


class TestStatum:
    async def test_request_shape(self):
        captured = {}

        def handler(request):
            captured["url"] = str(request.url)
            captured["auth"] = request.headers["Authorization"]
            captured["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={"status_code": 200, "request_id": "STM-1", "description": "Success"},
            )

        provider = _statum(handler)
        result = await provider.send_airtime("254722000111", 4550)
        await provider.close()

        assert captured["url"] == "https://statum.test/api/v2/airtime"
        assert captured["auth"].startswith("Basic ")
        # Statum sells whole shillings only
        assert captured["body"] == {"phone_number": "254722000111", "amount": "45"}
        assert result.state == ProviderState.SUCCESS
        assert result.correlation_id == "STM-1"

    async def test_declined(self):
        def handler(request):
            return httpx.Response(
                200,
                json={"status_code": 422, "description": "Insufficient float"},
            )

        provider = _statum(handler)
        result = await provider.send_airtime("254722000111", 4500)
        await provider.close()

        assert result.state == ProviderState.FAILED
        assert result.message == "Insufficient float"

    async def test_transport_error_is_unavailable(self):
        def handler(request):
            raise httpx.ConnectTimeout("connect timeout")

        provider = _statum(handler)
        result = await provider.send_airtime("254722000111", 4500)
        await provider.close()

        assert result.state == ProviderState.UNAVAILABLE
