"""Pydantic schemas for airtime-to-cash conversions."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from airtime_api.schemas.common import PhoneNumber


class ConversionCreateRequest(BaseModel):
    """Request body for POST /conversions."""
    phone: PhoneNumber
    airtime_amount_cents: int = Field(gt=0, description="Whole shillings only, in cents")


class ConversionInstructions(BaseModel):
    dial_code: str
    receive_number: str
    cash_amount_cents: int


class ConversionResponse(BaseModel):
    id: uuid.UUID
    account_id: uuid.UUID
    phone: str
    airtime_amount_cents: int
    cash_amount_cents: int
    rate: Decimal
    transfer_code: str | None
    status: str
    transaction_id: uuid.UUID | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ConversionCreatedResponse(BaseModel):
    """The quote plus how to send the airtime."""
    conversion: ConversionResponse
    instructions: ConversionInstructions
    message: str


class TransferCodeRequest(BaseModel):
    """Request body for POST /conversions/{id}/verify."""
    transfer_code: str = Field(min_length=4, max_length=32)
