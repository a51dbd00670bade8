"""
Conversion service — airtime-to-cash.

The member sends airtime to the platform's line by USSD (Safaricom
"Sambaza"), submits the transfer confirmation code, and an admin pays the
quoted cash out by M-Pesa. The wallet balance is never involved; completing
a request records a `conversion` transaction for the member's history.

The feature is switched on and priced by the airtime_to_cash_enabled and
airtime_to_cash_rate settings. The rate is captured on the request when the
quote is given.
"""

import logging
import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from airtime_api.config import settings
from airtime_api.exceptions import (
    ConflictingStateError,
    FeatureDisabledError,
    ResourceNotFoundError,
    UnauthorizedAccessError,
    ValidationError,
)
from airtime_api.models.account import Account
from airtime_api.models.conversion_request import ConversionRequest
from airtime_api.services import ledger_service, notification_service
from airtime_api.services.settings_service import LedgerSettings
from airtime_api.utils import format_kes

logger = logging.getLogger(__name__)


def dial_code(airtime_amount_cents: int) -> str:
    """USSD string that transfers the airtime to the platform's line."""
    return f"*140*{airtime_amount_cents // 100}*{settings.CONVERSION_RECEIVE_NUMBER}#"


async def request_conversion(
    db: AsyncSession,
    account: Account,
    phone: str,
    airtime_amount_cents: int,
    ledger_settings: LedgerSettings,
) -> ConversionRequest:
    """
    Quote a conversion and record the request.

    Raises:
        FeatureDisabledError: Conversions are switched off.
        ValidationError: Amount is not a positive whole-shilling amount.
    """
    if not ledger_settings.airtime_to_cash_enabled:
        raise FeatureDisabledError("This feature is coming soon!")

    # Airtime can only be transferred in whole shillings
    if airtime_amount_cents <= 0 or airtime_amount_cents % 100:
        raise ValidationError("Airtime amount must be a whole number of shillings")

    conversion = ConversionRequest(
        account_id=account.id,
        phone=phone,
        airtime_amount_cents=airtime_amount_cents,
        cash_amount_cents=ledger_settings.cash_value_for(airtime_amount_cents),
        rate=ledger_settings.airtime_to_cash_rate,
        status="pending",
    )
    db.add(conversion)
    await db.flush()

    logger.info(
        "Conversion %s requested: %d cents airtime for %d cents cash",
        conversion.id, airtime_amount_cents, conversion.cash_amount_cents,
    )
    return conversion


async def _get_conversion(db: AsyncSession, conversion_id: uuid.UUID) -> ConversionRequest:
    conversion = await db.get(ConversionRequest, conversion_id)
    if conversion is None:
        raise ResourceNotFoundError(f"Conversion request {conversion_id} not found")
    return conversion


async def submit_transfer_code(
    db: AsyncSession,
    account: Account,
    conversion_id: uuid.UUID,
    transfer_code: str,
) -> ConversionRequest:
    """
    Attach the airtime transfer confirmation code.

    Raises:
        ResourceNotFoundError: Unknown request.
        UnauthorizedAccessError: Request belongs to another account.
        ConflictingStateError: Already verified or completed.
    """
    conversion = await _get_conversion(db, conversion_id)
    if conversion.account_id != account.id:
        raise UnauthorizedAccessError("You do not have access to this conversion request")

    code = transfer_code.strip().upper()
    if not code:
        raise ValidationError("Transfer code is required")

    result = await db.execute(
        update(ConversionRequest)
        .where(ConversionRequest.id == conversion.id, ConversionRequest.status == "pending")
        .values(status="verified", transfer_code=code)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConflictingStateError(f"Conversion request {conversion.id} is already {conversion.status}")

    await db.refresh(conversion)
    return conversion


async def admin_list_conversions(
    db: AsyncSession,
    status_filter: str | None = None,
) -> list[ConversionRequest]:
    """[ADMIN ONLY] All conversion requests, newest first."""
    query = select(ConversionRequest).order_by(ConversionRequest.created_at.desc())
    if status_filter:
        query = query.where(ConversionRequest.status == status_filter)
    result = await db.execute(query)
    return list(result.scalars().all())


async def admin_complete_conversion(
    db: AsyncSession,
    conversion_id: uuid.UUID,
) -> ConversionRequest:
    """
    [ADMIN ONLY] Record that the cash has been paid out.

    Raises:
        ResourceNotFoundError: Unknown request.
        ConflictingStateError: Already completed.
    """
    conversion = await _get_conversion(db, conversion_id)

    result = await db.execute(
        update(ConversionRequest)
        .where(
            ConversionRequest.id == conversion.id,
            ConversionRequest.status.in_(("pending", "verified")),
        )
        .values(status="completed")
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConflictingStateError(f"Conversion request {conversion.id} is already completed")

    txn = await ledger_service.record_conversion(
        db,
        conversion.account_id,
        conversion.cash_amount_cents,
        conversion.phone,
        conversion.transfer_code,
    )

    await db.execute(
        update(ConversionRequest)
        .where(ConversionRequest.id == conversion.id)
        .values(transaction_id=txn.id)
        .execution_options(synchronize_session=False)
    )
    await notification_service.notify(
        db,
        conversion.account_id,
        "Cash Sent!",
        f"{format_kes(conversion.cash_amount_cents)} has been sent to your M-Pesa!",
        level="success",
    )
    await db.commit()
    await db.refresh(conversion)

    logger.info("Conversion %s completed", conversion.id)
    return conversion
