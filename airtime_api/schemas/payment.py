"""
Pydantic schemas for deposits, manual verification and airtime purchases.

Amounts are integer cents. Business minimums (KES 10 deposit, KES 5 airtime)
are enforced by the ledger, not here, so they report the same
invalid_amount error whichever route they come through.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from airtime_api.schemas.common import PhoneNumber


class DepositRequest(BaseModel):
    """Request body for POST /payments/deposits."""
    amount_cents: int = Field(gt=0, description="Amount in cents (must be positive)")
    phone: PhoneNumber


class PaymentInitiatedResponse(BaseModel):
    """Returned once the STK push has been sent to the payer's phone."""
    transaction_id: uuid.UUID
    reference: str
    status: str
    message: str


class DepositStatusResponse(BaseModel):
    transaction_id: uuid.UUID
    reference: str
    status: str
    amount_cents: int
    bonus_cents: int
    receipt_code: str | None


class DepositVerificationRequest(BaseModel):
    """Request body for POST /payments/deposits/verify."""
    receipt_code: str = Field(min_length=6, max_length=20)
    phone: PhoneNumber


class VerificationResponse(BaseModel):
    id: uuid.UUID
    account_id: uuid.UUID
    transaction_id: uuid.UUID
    receipt_code: str
    phone: str
    amount_cents: int | None
    status: str
    verified_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class VerificationApproveRequest(BaseModel):
    """Request body for approving a manual deposit: the amount actually received."""
    amount_cents: int = Field(gt=0)


class AirtimePurchaseRequest(BaseModel):
    """Request body for POST /airtime/buy."""
    target_phone: PhoneNumber
    amount_cents: int = Field(gt=0)


class AirtimePurchaseResponse(BaseModel):
    transaction_id: uuid.UUID
    status: str
    amount_cents: int
    airtime_value_cents: int
    target_phone: str
    message: str


class DirectPurchaseRequest(BaseModel):
    """Request body for POST /airtime/direct (no login required)."""
    pay_phone: PhoneNumber
    receive_phone: PhoneNumber
    amount_cents: int = Field(gt=0)


class FloatStatusResponse(BaseModel):
    sufficient: bool
    minimum_required_cents: int
