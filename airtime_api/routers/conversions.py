"""
Conversions router — airtime-to-cash.

    POST /conversions               — Get a quote and dialing instructions
    POST /conversions/{id}/verify   — Submit the airtime transfer code

Admins pay out and complete requests from /admin/conversions.
"""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from airtime_api.config import settings
from airtime_api.database import get_db
from airtime_api.dependencies import get_current_account, get_ledger_settings
from airtime_api.models.account import Account
from airtime_api.schemas.conversion import (
    ConversionCreateRequest,
    ConversionCreatedResponse,
    ConversionInstructions,
    ConversionResponse,
    TransferCodeRequest,
)
from airtime_api.services import conversion_service
from airtime_api.services.settings_service import LedgerSettings
from airtime_api.utils import format_kes

router = APIRouter()


@router.post(
    "",
    response_model=ConversionCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request an airtime-to-cash conversion",
)
async def request_conversion(
    request: ConversionCreateRequest,
    account: Account = Depends(get_current_account),
    ledger_settings: LedgerSettings = Depends(get_ledger_settings),
    db: AsyncSession = Depends(get_db),
):
    """
    Quote a conversion at the current rate and explain how to send the airtime.

    Returns 400 `feature_disabled` while conversions are switched off.
    """
    conversion = await conversion_service.request_conversion(
        db, account, request.phone, request.airtime_amount_cents, ledger_settings
    )
    dial_code = conversion_service.dial_code(conversion.airtime_amount_cents)
    return ConversionCreatedResponse(
        conversion=ConversionResponse.model_validate(conversion),
        instructions=ConversionInstructions(
            dial_code=dial_code,
            receive_number=settings.CONVERSION_RECEIVE_NUMBER,
            cash_amount_cents=conversion.cash_amount_cents,
        ),
        message=(
            f"Dial {dial_code} to send airtime. You will receive "
            f"{format_kes(conversion.cash_amount_cents)} after verification."
        ),
    )


@router.post(
    "/{conversion_id}/verify",
    response_model=ConversionResponse,
    summary="Submit the airtime transfer code",
)
async def submit_transfer_code(
    conversion_id: uuid.UUID,
    request: TransferCodeRequest,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """Attach the confirmation code from the airtime transfer SMS."""
    return await conversion_service.submit_transfer_code(
        db, account, conversion_id, request.transfer_code
    )
