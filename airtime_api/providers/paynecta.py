"""
PayNecta collection provider (M-Pesa STK push).

Endpoints:
    POST /payments/initialize      — start an STK push
    GET  /payments/query/{ref}     — poll a payment

Authentication is by the X-API-Key and X-User-Email headers.
"""

import logging

import httpx

from airtime_api.providers.base import CollectionProvider, ProviderResult, ProviderState

logger = logging.getLogger(__name__)

_SUCCESS_STATES = {"success", "completed", "successful"}
_FAILED_STATES = {"failed", "cancelled", "canceled", "timeout", "expired"}


def map_payment_status(status: str | None) -> ProviderState:
    """Map a PayNecta payment status string onto a ProviderState."""
    normalized = (status or "").strip().lower()
    if normalized in _SUCCESS_STATES:
        return ProviderState.SUCCESS
    if normalized in _FAILED_STATES:
        return ProviderState.FAILED
    return ProviderState.PENDING


class PayNectaProvider(CollectionProvider):
    name = "paynecta"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        email: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"X-API-Key": api_key, "X-User-Email": email},
            timeout=timeout,
            transport=transport,
        )

    async def initiate(
        self,
        phone: str,
        amount_cents: int,
        reference: str,
        callback_url: str,
    ) -> ProviderResult:
        payload = {
            "phone": phone,
            # PayNecta takes shillings
            "amount": amount_cents / 100,
            "reference": reference,
            "callback_url": callback_url,
        }
        try:
            response = await self._client.post("/payments/initialize", json=payload)
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("PayNecta initialize failed for %s: %s", reference, e)
            return ProviderResult.unavailable(str(e))

        if not data.get("success"):
            return ProviderResult(
                state=ProviderState.FAILED,
                message=data.get("message") or "Payment initialization failed",
                raw=data,
            )

        body = data.get("data") or {}
        return ProviderResult(
            state=ProviderState.PENDING,
            correlation_id=body.get("checkout_request_id") or data.get("reference"),
            message=data.get("message"),
            raw=data,
        )

    async def query(self, reference: str) -> ProviderResult:
        try:
            response = await self._client.get(f"/payments/query/{reference}")
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("PayNecta query failed for %s: %s", reference, e)
            return ProviderResult.unavailable(str(e))

        body = data.get("data") or {}
        return ProviderResult(
            state=map_payment_status(body.get("status")),
            correlation_id=body.get("checkout_request_id"),
            receipt_code=body.get("mpesa_receipt_number") or body.get("mpesa_code"),
            message=data.get("message"),
            raw=data,
        )

    async def close(self) -> None:
        await self._client.aclose()
