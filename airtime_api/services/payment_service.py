"""
Payment service — STK push deposits, direct purchases and provider callbacks.

This module is the glue between the HTTP surface and the ledger:
  - Opening deposit / direct-purchase intents and sending the STK push
  - Polling PayNecta for a deposit's status on demand
  - Routing provider callbacks to the right ledger outcome

Callback matching:
  A callback is matched to exactly one transaction by EXACT equality on our
  reference or the provider's correlation id. No LIKE / substring matching:
  a crafted reference must never resolve somebody else's transaction.

Callback responses:
  - {"success": True}  — applied, or already applied (duplicate delivery)
  - {"success": False} — no such transaction; still HTTP 200 so the
                         provider stops retrying
"""

import logging
import uuid
from decimal import Decimal, InvalidOperation

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from airtime_api.config import settings
from airtime_api.exceptions import (
    ProviderRejectedError,
    ProviderUnavailableError,
    ResourceNotFoundError,
    TransactionNotFoundError,
)
from airtime_api.models.account import Account
from airtime_api.models.transaction import Transaction
from airtime_api.providers.base import (
    CollectionProvider,
    DisbursementProvider,
    ProviderResult,
    ProviderState,
)
from airtime_api.providers.paynecta import map_payment_status
from airtime_api.services import ledger_service
from airtime_api.services.settings_service import LedgerSettings

logger = logging.getLogger(__name__)


def callback_url(provider: str) -> str:
    return f"{settings.CALLBACK_BASE_URL.rstrip('/')}/callback/{provider}"


async def _send_stk_push(
    db: AsyncSession,
    txn: Transaction,
    collection: CollectionProvider,
) -> ProviderResult:
    """
    Ask PayNecta to push the payment prompt for an already-committed intent.

    Raises:
        ProviderUnavailableError: PayNecta unreachable; the intent is failed.
        ProviderRejectedError: PayNecta declined; the intent is failed.
    """
    result = await collection.initiate(
        txn.phone, txn.amount_cents, txn.reference, callback_url(collection.name)
    )

    if result.state == ProviderState.UNAVAILABLE:
        logger.warning("%s unavailable for %s: %s", collection.name, txn.reference, result.message)
        await ledger_service.fail_transaction(db, txn, payload={"error": result.message})
        raise ProviderUnavailableError(collection.name, txn.id)

    if result.state == ProviderState.FAILED:
        await ledger_service.fail_transaction(db, txn, payload=result.raw)
        raise ProviderRejectedError(result.message or "Payment initialization failed")

    await ledger_service.record_correlation(db, txn, result.correlation_id, result.raw)
    return result


async def initiate_deposit(
    db: AsyncSession,
    account: Account,
    amount_cents: int,
    phone: str,
    collection: CollectionProvider,
) -> Transaction:
    """
    Start an M-Pesa deposit into the member's wallet.

    The pending transaction is committed before PayNecta is contacted. The
    balance only moves when the callback (or a status poll) reports success.
    """
    txn = await ledger_service.open_intent(
        db,
        kind="deposit",
        amount_cents=amount_cents,
        provider=collection.name,
        account_id=account.id,
        phone=phone,
        description="M-Pesa STK Push Deposit",
    )
    await _send_stk_push(db, txn, collection)
    return txn


async def initiate_direct_purchase(
    db: AsyncSession,
    pay_phone: str,
    receive_phone: str,
    amount_cents: int,
    collection: CollectionProvider,
) -> Transaction:
    """Anonymous purchase: STK push to `pay_phone`, airtime to `receive_phone` once paid."""
    txn = await ledger_service.open_intent(
        db,
        kind="direct_purchase",
        amount_cents=amount_cents,
        provider=collection.name,
        phone=pay_phone,
        target_phone=receive_phone,
        description="Direct Airtime Purchase",
    )
    await _send_stk_push(db, txn, collection)
    return txn


async def refresh_deposit_status(
    db: AsyncSession,
    account: Account,
    transaction_id: uuid.UUID,
    collection: CollectionProvider,
    ledger_settings: LedgerSettings,
    disbursement: DisbursementProvider,
) -> Transaction:
    """
    Poll PayNecta for a pending deposit and apply a terminal answer.

    Useful when a callback was lost. A query that fails (UNAVAILABLE) tells
    us nothing about the payment itself, so the deposit stays pending.

    Raises:
        TransactionNotFoundError: Not one of this member's deposits.
    """
    result = await db.execute(
        select(Transaction).where(
            Transaction.id == transaction_id,
            Transaction.account_id == account.id,
            Transaction.kind == "deposit",
        )
    )
    txn = result.scalar_one_or_none()
    if txn is None:
        raise TransactionNotFoundError(transaction_id)

    if txn.status != "pending" or txn.provider != collection.name:
        return txn

    outcome = await collection.query(txn.correlation_id or txn.reference)

    if outcome.state == ProviderState.SUCCESS:
        await ledger_service.confirm_deposit(
            db, txn, ledger_settings, disbursement,
            receipt_code=outcome.receipt_code,
            payload=outcome.raw,
        )
    elif outcome.state == ProviderState.FAILED:
        await ledger_service.fail_transaction(db, txn, payload=outcome.raw)
    elif outcome.state == ProviderState.UNAVAILABLE:
        logger.warning("Could not query %s for %s: %s", collection.name, txn.reference, outcome.message)

    return txn


# ---------------------------------------------------------------------------
# Callbacks
# ---------------------------------------------------------------------------

async def _find_by_reference(
    db: AsyncSession,
    provider: str,
    *references: str | None,
) -> Transaction | None:
    candidates = [ref for ref in references if ref]
    if not candidates:
        return None
    result = await db.execute(
        select(Transaction)
        .where(
            Transaction.provider == provider,
            or_(
                Transaction.reference.in_(candidates),
                Transaction.correlation_id.in_(candidates),
            ),
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


def _callback_amount_cents(raw) -> int | None:
    if raw is None:
        return None
    try:
        return int((Decimal(str(raw)) * 100).to_integral_value())
    except (InvalidOperation, ValueError, OverflowError):
        return None


async def _handle_paynecta_callback(
    db: AsyncSession,
    payload: dict,
    ledger_settings: LedgerSettings,
    disbursement: DisbursementProvider,
) -> dict:
    data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
    reference = payload.get("reference") or data.get("reference")
    checkout_id = payload.get("checkout_request_id") or data.get("checkout_request_id")

    txn = await _find_by_reference(db, "paynecta", reference, checkout_id)
    if txn is None:
        logger.warning("PayNecta callback for unknown reference %r", reference or checkout_id)
        return {"success": False, "message": "Transaction not found"}

    if txn.status != "pending":
        logger.info("Duplicate PayNecta callback for %s (already %s)", txn.reference, txn.status)
        return {"success": True}

    state = map_payment_status(payload.get("status") or data.get("status"))
    receipt_code = (
        payload.get("mpesa_code")
        or payload.get("mpesa_receipt_number")
        or data.get("mpesa_receipt_number")
    )

    paid_cents = _callback_amount_cents(payload.get("amount"))
    if paid_cents is not None and paid_cents != txn.amount_cents:
        # The stored amount is what gets credited
        logger.warning(
            "Callback amount %d differs from %d for %s",
            paid_cents, txn.amount_cents, txn.reference,
        )

    if state == ProviderState.PENDING:
        logger.info("PayNecta reports %s still pending", txn.reference)
    elif txn.kind == "direct_purchase":
        if state == ProviderState.SUCCESS:
            await ledger_service.complete_direct_purchase(
                db, txn, ledger_settings, disbursement,
                receipt_code=receipt_code, payload=payload,
            )
        else:
            await ledger_service.fail_transaction(db, txn, payload=payload)
    else:
        if state == ProviderState.SUCCESS:
            await ledger_service.confirm_deposit(
                db, txn, ledger_settings, disbursement,
                receipt_code=receipt_code, payload=payload,
            )
        else:
            await ledger_service.fail_transaction(db, txn, payload=payload)

    return {"success": True}


async def _handle_statum_callback(
    db: AsyncSession,
    payload: dict,
    ledger_settings: LedgerSettings,
) -> dict:
    request_id = payload.get("request_id")
    txn = await _find_by_reference(db, "statum", request_id)
    if txn is None and request_id:
        # Direct purchases are paid through PayNecta but delivered by Statum
        result = await db.execute(
            select(Transaction)
            .where(
                Transaction.kind == "direct_purchase",
                Transaction.correlation_id == request_id,
            )
            .limit(1)
        )
        txn = result.scalar_one_or_none()
    if txn is None:
        logger.warning("Statum callback for unknown request_id %r", request_id)
        return {"success": False, "message": "Transaction not found"}

    if txn.status != "pending":
        logger.info("Duplicate Statum callback for %s (already %s)", txn.reference, txn.status)
        return {"success": True}

    succeeded = str(payload.get("result_code")) == "200"
    await ledger_service.resolve_disbursement_callback(db, txn, ledger_settings, succeeded, payload)
    return {"success": True}


async def handle_callback(
    db: AsyncSession,
    provider: str,
    payload: dict,
    ledger_settings: LedgerSettings,
    disbursement: DisbursementProvider,
) -> dict:
    """
    Apply a provider webhook.

    Raises:
        ResourceNotFoundError: Unknown provider name in the URL.
    """
    if provider == "paynecta":
        return await _handle_paynecta_callback(db, payload, ledger_settings, disbursement)
    if provider == "statum":
        return await _handle_statum_callback(db, payload, ledger_settings)
    raise ResourceNotFoundError(f"Unknown callback provider {provider}")
