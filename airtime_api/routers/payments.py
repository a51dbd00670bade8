"""
Payments router — wallet deposits.

    POST /payments/deposits               — M-Pesa STK push deposit
    GET  /payments/deposits/{id}/status   — Poll PayNecta and reconcile
    POST /payments/deposits/verify        — Manual verification by receipt code

A deposit only credits the wallet once PayNecta confirms it (callback or
status poll). The initiate call returns as soon as the STK push is sent.
"""

import uuid

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
    DepositRequest,
    DepositStatusResponse,
    DepositVerificationRequest,
    PaymentInitiatedResponse,
    VerificationResponse,
)
from airtime_api.services import payment_service, verification_service
from airtime_api.services.settings_service import LedgerSettings

router = APIRouter()


@router.post(
    "/deposits",
    response_model=PaymentInitiatedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Deposit via M-Pesa STK push",
)
async def initiate_deposit(
    request: DepositRequest,
    account: Account = Depends(get_current_account),
    collection: CollectionProvider = Depends(get_collection_provider),
    db: AsyncSession = Depends(get_db),
):
    """
    Send an M-Pesa payment prompt to `phone`.

    - **amount_cents**: Minimum 1000 (KES 10)
    - **phone**: The paying M-Pesa number

    Deposits of KES 50 or more earn a bonus when they are credited (amounts
    are configurable by admins).
    """
    txn = await payment_service.initiate_deposit(
        db, account, request.amount_cents, request.phone, collection
    )
    return PaymentInitiatedResponse(
        transaction_id=txn.id,
        reference=txn.reference,
        status=txn.status,
        message="STK Push sent to your phone",
    )


@router.get(
    "/deposits/{transaction_id}/status",
    response_model=DepositStatusResponse,
    summary="Check a deposit's status",
)
async def get_deposit_status(
    transaction_id: uuid.UUID,
    account: Account = Depends(get_current_account),
    collection: CollectionProvider = Depends(get_collection_provider),
    disbursement: DisbursementProvider = Depends(get_disbursement_provider),
    ledger_settings: LedgerSettings = Depends(get_ledger_settings),
    db: AsyncSession = Depends(get_db),
):
    """
    Check a deposit, asking PayNecta if it is still pending.

    If PayNecta reports a final outcome the deposit is reconciled exactly as
    if the callback had arrived.
    """
    txn = await payment_service.refresh_deposit_status(
        db, account, transaction_id, collection, ledger_settings, disbursement
    )
    return DepositStatusResponse(
        transaction_id=txn.id,
        reference=txn.reference,
        status=txn.status,
        amount_cents=txn.amount_cents,
        bonus_cents=txn.bonus_cents,
        receipt_code=txn.receipt_code,
    )


@router.post(
    "/deposits/verify",
    response_model=VerificationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit an M-Pesa receipt for manual verification",
)
async def submit_deposit_verification(
    request: DepositVerificationRequest,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """
    Claim a payment whose confirmation never arrived.

    An admin checks the receipt code and credits the amount received. Each
    receipt code can only be used once.
    """
    return await verification_service.submit_verification(
        db, account, request.receipt_code, request.phone
    )
