"""
Payment provider interfaces.

The ledger talks to two kinds of external payment service:

  - CollectionProvider:   pulls money from a customer's M-Pesa wallet
                          (STK push) — PayNecta
  - DisbursementProvider: pushes airtime to a phone, funded from the
                          platform's float — Statum

Every call returns a ProviderResult. Adapters NEVER raise for network or
timeout problems; they return a result in the UNAVAILABLE state so the
ledger can fail the transaction deterministically instead of leaving it
stuck in "pending".
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ProviderState(str, Enum):
    """Universal outcome of a provider call."""
    PENDING = "pending"          # accepted; the outcome will arrive by callback
    SUCCESS = "success"
    FAILED = "failed"            # the provider answered and declined
    UNAVAILABLE = "unavailable"  # transport error or timeout


@dataclass
class ProviderResult:
    """Universal provider response."""
    state: ProviderState
    correlation_id: str | None = None
    receipt_code: str | None = None
    message: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def unavailable(cls, message: str) -> ProviderResult:
        return cls(state=ProviderState.UNAVAILABLE, message=message)


class CollectionProvider(ABC):
    """Mobile-money collection via STK push."""

    name: str

    @abstractmethod
    async def initiate(
        self,
        phone: str,
        amount_cents: int,
        reference: str,
        callback_url: str,
    ) -> ProviderResult:
        """Send an STK push to `phone` asking the payer to authorise the charge."""

    @abstractmethod
    async def query(self, reference: str) -> ProviderResult:
        """Look up the current state of a previously initiated payment."""

    async def close(self) -> None:
        """Clean up provider resources. Override if needed."""


class DisbursementProvider(ABC):
    """Airtime disbursement from the platform float."""

    name: str

    @abstractmethod
    async def send_airtime(self, phone: str, amount_cents: int) -> ProviderResult:
        """Top up `phone` with airtime worth `amount_cents`."""

    async def close(self) -> None:
        """Clean up provider resources. Override if needed."""
