"""
Airtime router.

    POST /airtime/buy           — Buy airtime from the wallet balance [member]
    POST /airtime/direct        — Pay by M-Pesa, airtime sent once paid [public]
    GET  /airtime/float-status  — Minimum float setting [public]

Pricing: the buyer pays the requested amount and the target phone receives
that amount less the airtime discount rate (platform margin).
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from airtime_api.database import get_db
from airtime_api.dependencies import (
    get_collection_provider,
    get_current_account,
    get_disbursement_provider,
    get_ledger_settings,
)
from airtime_api.models.account import Account
from airtime_api.providers import CollectionProvider, DisbursementProvider
from airtime_api.schemas.payment import (
    AirtimePurchaseRequest,
    AirtimePurchaseResponse,
    DirectPurchaseRequest,
    FloatStatusResponse,
    PaymentInitiatedResponse,
)
from airtime_api.services import ledger_service, payment_service
from airtime_api.services.settings_service import LedgerSettings
from airtime_api.utils import format_kes

router = APIRouter()


@router.post(
    "/buy",
    response_model=AirtimePurchaseResponse,
    summary="Buy airtime from balance",
)
async def buy_airtime(
    request: AirtimePurchaseRequest,
    account: Account = Depends(get_current_account),
    disbursement: DisbursementProvider = Depends(get_disbursement_provider),
    ledger_settings: LedgerSettings = Depends(get_ledger_settings),
    db: AsyncSession = Depends(get_db),
):
    """
    Buy airtime for any phone, paid from your wallet.

    - **amount_cents**: Minimum 500 (KES 5)

    If your balance is too low the purchase is queued (422
    `insufficient_funds`, with the shortfall and `queued_purchase_id`) and
    completed automatically after your next deposit.
    """
    txn = await ledger_service.purchase_airtime(
        db,
        account.id,
        request.target_phone,
        request.amount_cents,
        ledger_settings,
        disbursement,
    )
    delivered = ledger_settings.airtime_value_for(txn.amount_cents)
    if txn.status == "success":
        message = f"{format_kes(delivered)} airtime sent to {txn.target_phone}"
    else:
        message = f"{format_kes(delivered)} airtime is being sent to {txn.target_phone}"

    return AirtimePurchaseResponse(
        transaction_id=txn.id,
        status=txn.status,
        amount_cents=txn.amount_cents,
        airtime_value_cents=delivered,
        target_phone=txn.target_phone,
        message=message,
    )


@router.post(
    "/direct",
    response_model=PaymentInitiatedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Buy airtime directly with M-Pesa",
)
async def buy_airtime_direct(
    request: DirectPurchaseRequest,
    collection: CollectionProvider = Depends(get_collection_provider),
    db: AsyncSession = Depends(get_db),
):
    """
    No account needed: `pay_phone` gets an M-Pesa prompt, and once the
    payment is confirmed the airtime goes to `receive_phone`.
    """
    txn = await payment_service.initiate_direct_purchase(
        db, request.pay_phone, request.receive_phone, request.amount_cents, collection
    )
    return PaymentInitiatedResponse(
        transaction_id=txn.id,
        reference=txn.reference,
        status=txn.status,
        message="STK Push sent. Airtime will be sent after payment.",
    )


@router.get(
    "/float-status",
    response_model=FloatStatusResponse,
    summary="Airtime float status",
)
async def float_status(
    ledger_settings: LedgerSettings = Depends(get_ledger_settings),
):
    """
    Report the configured minimum Statum float.

    Statum exposes no balance endpoint we use, so `sufficient` is always
    true; operators watch the float from the Statum dashboard.
    """
    return FloatStatusResponse(
        sufficient=True,
        minimum_required_cents=ledger_settings.float_minimum_cents,
    )
