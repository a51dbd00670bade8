"""
Pydantic schemas for Account endpoints.

All monetary amounts are expressed in integer cents (KES 10.50 = 1050).
"""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class AccountResponse(BaseModel):
    """Public representation of a wallet account."""
    id: uuid.UUID
    username: str
    email: str
    phone: str
    balance_cents: int
    status: str
    language: str
    theme: str
    last_login_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class BalanceResponse(BaseModel):
    """Balance check: cached balance vs. balance recomputed from transactions."""
    account_id: uuid.UUID
    balance_cents: int
    computed_balance_cents: int
    match: bool


class PreferencesUpdateRequest(BaseModel):
    """Request body for PUT /accounts/me/preferences. Omitted fields are unchanged."""
    language: Literal["en", "sw"] | None = None
    theme: Literal["light", "dark"] | None = None


class AccountStatusUpdateRequest(BaseModel):
    """Request body for PUT /admin/users/{account_id}/status."""
    status: Literal["active", "suspended"]


class BalanceAdjustmentRequest(BaseModel):
    """Request body for PUT /admin/users/{account_id}/balance."""
    amount_cents: int = Field(
        description="Signed amount in cents: positive credits, negative debits",
    )
    reason: str | None = Field(None, max_length=255)
