"""
Verification service — manual deposit verification by M-Pesa receipt code.

When an STK push callback never arrives, the member can submit the receipt
code from their M-Pesa SMS. An admin checks it against the M-Pesa statement
and either approves it (entering the amount actually received) or rejects it.

Duplicate protection:
  A receipt code can be credited at most once. Submission is refused if the
  code is already attached to a pending/verified request, or already on a
  successful transaction. Approval repeats the second check, since the STK
  callback for the same payment may have landed in between. The UNIQUE
  constraint on deposit_verifications.receipt_code backs this up under
  concurrency.

Resolution is a conditional UPDATE on the verification (WHERE status =
'pending'), the same pattern the ledger uses for transactions, so two
admins clicking "approve" at once credit the account once.
"""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from airtime_api.exceptions import (
    ConflictingStateError,
    DuplicateReceiptError,
    ResourceNotFoundError,
    ValidationError,
)
from airtime_api.models.account import Account
from airtime_api.models.deposit_verification import DepositVerification
from airtime_api.models.transaction import Transaction
from airtime_api.providers.base import DisbursementProvider
from airtime_api.services import ledger_service
from airtime_api.services.settings_service import LedgerSettings

logger = logging.getLogger(__name__)


def normalize_receipt_code(receipt_code: str) -> str:
    return receipt_code.strip().upper()


async def submit_verification(
    db: AsyncSession,
    account: Account,
    receipt_code: str,
    phone: str,
) -> DepositVerification:
    """
    Record a member's claim that they paid.

    Creates a pending DepositVerification plus a pending manual deposit
    transaction (amount 0 until approved).

    Raises:
        ValidationError: Empty receipt code.
        DuplicateReceiptError: The code was already submitted or credited.
    """
    code = normalize_receipt_code(receipt_code)
    if not code:
        raise ValidationError("Receipt code is required")

    existing = await db.execute(
        select(DepositVerification.id).where(
            DepositVerification.receipt_code == code,
            DepositVerification.status.in_(("pending", "verified")),
        )
    )
    if existing.first() is not None:
        raise DuplicateReceiptError(code, "This receipt code has already been submitted")

    if await ledger_service.receipt_already_credited(db, code):
        raise DuplicateReceiptError(code, "This receipt code has already been credited")

    # A rejected request keeps its row (and the unique code); free the code
    # so the member can resubmit it.
    await db.execute(
        update(DepositVerification)
        .where(
            DepositVerification.receipt_code == code,
            DepositVerification.status == "failed",
        )
        .values(receipt_code=f"{code}-R{uuid.uuid4().hex[:8]}")
        .execution_options(synchronize_session=False)
    )

    try:
        txn = await ledger_service.open_manual_deposit(db, account.id, code, phone)
        verification = DepositVerification(
            account_id=account.id,
            transaction_id=txn.id,
            receipt_code=code,
            phone=phone,
            status="pending",
        )
        db.add(verification)
        await db.flush()
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicateReceiptError(code, "This receipt code has already been submitted")

    logger.info("Verification %s submitted for receipt %s", verification.id, code)
    return verification


async def list_verifications(
    db: AsyncSession,
    status_filter: str | None = None,
) -> list[DepositVerification]:
    """[ADMIN ONLY] Verification requests, newest first."""
    query = select(DepositVerification).order_by(DepositVerification.created_at.desc())
    if status_filter:
        query = query.where(DepositVerification.status == status_filter)
    result = await db.execute(query)
    return list(result.scalars().all())


async def _get_verification(db: AsyncSession, verification_id: uuid.UUID) -> DepositVerification:
    verification = await db.get(DepositVerification, verification_id)
    if verification is None:
        raise ResourceNotFoundError(f"Verification {verification_id} not found")
    return verification


async def _claim(
    db: AsyncSession,
    verification: DepositVerification,
    new_status: str,
    **values,
) -> None:
    result = await db.execute(
        update(DepositVerification)
        .where(
            DepositVerification.id == verification.id,
            DepositVerification.status == "pending",
        )
        .values(status=new_status, verified_at=datetime.now(timezone.utc), **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConflictingStateError(f"Verification {verification.id} has already been resolved")


async def approve_verification(
    db: AsyncSession,
    verification_id: uuid.UUID,
    amount_cents: int,
    ledger_settings: LedgerSettings,
    disbursement: DisbursementProvider,
) -> DepositVerification:
    """
    [ADMIN ONLY] Credit the verified amount (plus any deposit bonus).

    Raises:
        ResourceNotFoundError: Unknown verification.
        InvalidAmountError: amount below the deposit minimum.
        DuplicateReceiptError: The receipt was credited by another deposit
            (usually its STK callback) after it was submitted.
        ConflictingStateError: Already approved or rejected.
    """
    ledger_service.check_minimum("deposit", amount_cents)
    verification = await _get_verification(db, verification_id)
    if await ledger_service.receipt_already_credited(
        db, verification.receipt_code, exclude_transaction_id=verification.transaction_id,
    ):
        raise DuplicateReceiptError(
            verification.receipt_code, "This receipt code has already been credited",
        )
    await _claim(db, verification, "verified", amount_cents=amount_cents)

    txn = await db.get(Transaction, verification.transaction_id)
    applied = await ledger_service.confirm_deposit(
        db, txn, ledger_settings, disbursement,
        receipt_code=verification.receipt_code,
        amount_cents=amount_cents,
        title="Deposit Verified",
    )
    if not applied:
        await db.rollback()
        raise ConflictingStateError(f"Deposit {txn.reference} has already been resolved")

    await db.refresh(verification)
    logger.info("Verification %s approved for %d cents", verification.id, amount_cents)
    return verification


async def reject_verification(
    db: AsyncSession,
    verification_id: uuid.UUID,
) -> DepositVerification:
    """
    [ADMIN ONLY] Mark both the request and its manual deposit failed.

    Raises:
        ResourceNotFoundError: Unknown verification.
        ConflictingStateError: Already approved or rejected.
    """
    verification = await _get_verification(db, verification_id)
    await _claim(db, verification, "failed")

    txn = await db.get(Transaction, verification.transaction_id)
    await ledger_service.fail_transaction(db, txn, description="Manual verification rejected")

    await db.refresh(verification)
    logger.info("Verification %s rejected", verification.id)
    return verification
