"""
Statum disbursement provider (airtime top-up).

Endpoint:
    POST /airtime   {"phone_number": "2547...", "amount": "90"}

Authentication is HTTP Basic with the consumer key/secret. Statum only sells
whole shillings, so the amount is floored. A response with status_code 200
means the top-up was dispatched.
"""

import logging

import httpx

from airtime_api.providers.base import DisbursementProvider, ProviderResult, ProviderState

logger = logging.getLogger(__name__)


class StatumProvider(DisbursementProvider):
    name = "statum"

    def __init__(
        self,
        base_url: str,
        consumer_key: str,
        consumer_secret: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            auth=(consumer_key, consumer_secret),
            timeout=timeout,
            transport=transport,
        )

    async def send_airtime(self, phone: str, amount_cents: int) -> ProviderResult:
        payload = {"phone_number": phone, "amount": str(amount_cents // 100)}
        try:
            response = await self._client.post("/airtime", json=payload)
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Statum airtime request to %s failed: %s", phone, e)
            return ProviderResult.unavailable(str(e))

        if data.get("status_code") == 200:
            return ProviderResult(
                state=ProviderState.SUCCESS,
                correlation_id=data.get("request_id"),
                message=data.get("description"),
                raw=data,
            )

        return ProviderResult(
            state=ProviderState.FAILED,
            correlation_id=data.get("request_id"),
            message=data.get("description") or "Airtime purchase failed",
            raw=data,
        )

    async def close(self) -> None:
        await self._client.aclose()
