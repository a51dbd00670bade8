"""
Pydantic schemas for Transaction endpoints.

All monetary amounts are in integer cents. Amounts are always positive;
`direction` says which way the money moved.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel


class TransactionResponse(BaseModel):
    """Public representation of a transaction."""
    id: uuid.UUID
    account_id: uuid.UUID | None
    kind: str
    direction: str
    amount_cents: int
    bonus_cents: int
    fee_cents: int
    provider: str
    reference: str
    receipt_code: str | None
    phone: str | None
    target_phone: str | None
    status: str
    description: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class StatsResponse(BaseModel):
    """Admin dashboard totals."""
    total_users: int
    total_deposits_cents: int
    total_airtime_cents: int
    total_balance_cents: int
