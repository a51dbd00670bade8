"""
Ledger service — the balance ledger and its reconciliation state machine.

THIS IS THE MOST CRITICAL FILE IN THE PROJECT. It is the only code that
writes Account.balance_cents or Transaction.status. It handles:
  - Opening transaction intents (pending rows with a unique reference)
  - Applying provider outcomes (success / failure) exactly once
  - Deposit bonuses and airtime discounts, from a LedgerSettings snapshot
  - Reserve-then-confirm airtime purchases with guaranteed refunds
  - Settling queued purchases when funds arrive
  - Admin balance adjustments

State machine:
    pending ──> success
       └──────> failed

  Both outcomes are terminal. Every transition is a conditional UPDATE:

      UPDATE transactions SET status = :new ... WHERE id = :id AND status = 'pending'

  Only the caller whose UPDATE matched a row (rowcount == 1) applies the
  balance side effect. A provider retrying a callback, two callbacks racing,
  or a callback racing the synchronous response all resolve to one winner;
  the others see rowcount == 0 and do nothing.

Atomicity:
  A status transition, its balance mutation and its notification are
  committed together. Balance mutations are single-row UPDATEs
  (`balance_cents = balance_cents ± x`), debits additionally guarded by
  `balance_cents >= x`, so concurrent requests on the same account serialize
  on the row instead of reading and writing back a stale value.

Reserve-then-confirm:
  Airtime paid from the wallet is debited BEFORE the disbursement provider is
  called (the reservation is committed with the pending transaction). If the
  provider fails or is unreachable, the transaction moves to "failed" and the
  reserved amount is credited back — only by the caller that won the
  pending -> failed transition, so the refund happens exactly once.

Intent durability:
  open_intent() commits the pending row before any provider is contacted, so
  a callback that beats the synchronous response still finds it.
"""

import logging
import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from airtime_api.exceptions import (
    AccountSuspendedError,
    InsufficientFundsError,
    InvalidAmountError,
    ProviderRejectedError,
    ProviderUnavailableError,
    ValidationError,
)
from airtime_api.models.account import Account
from airtime_api.models.queued_purchase import QueuedPurchase
from airtime_api.models.transaction import Transaction
from airtime_api.providers.base import DisbursementProvider, ProviderResult, ProviderState
from airtime_api.services import account_service, notification_service
from airtime_api.services.settings_service import LedgerSettings
from airtime_api.utils import format_kes

logger = logging.getLogger(__name__)


MIN_DEPOSIT_CENTS = 1000
MIN_AIRTIME_CENTS = 500

_MINIMUM_CENTS = {
    "deposit": MIN_DEPOSIT_CENTS,
    "airtime_purchase": MIN_AIRTIME_CENTS,
    "direct_purchase": MIN_AIRTIME_CENTS,
}

_REFERENCE_PREFIXES = {
    "deposit": "DEP",
    "airtime_purchase": "AIR",
    "direct_purchase": "DIRECT",
    "adjustment": "ADJ",
    "conversion": "A2C",
}

_DIRECTIONS = {
    "deposit": "credit",
    "airtime_purchase": "debit",
    "direct_purchase": "debit",
    "conversion": "credit",
}


def new_reference(kind: str) -> str:
    """Globally unique external reference, e.g. 'DEP-9f1c...'."""
    return f"{_REFERENCE_PREFIXES[kind]}-{uuid.uuid4().hex}"


def check_minimum(kind: str, amount_cents: int) -> None:
    minimum = _MINIMUM_CENTS.get(kind, 1)
    if amount_cents < minimum:
        purpose = "airtime" if kind != "deposit" else "deposit"
        raise InvalidAmountError(purpose, amount_cents, minimum)


def _merge_payload(existing: dict | None, key: str, payload: dict | None) -> dict | None:
    if payload is None:
        return existing
    merged = dict(existing or {})
    merged[key] = payload
    return merged


# ---------------------------------------------------------------------------
# Row-level primitives
# ---------------------------------------------------------------------------

async def _transition(
    db: AsyncSession,
    txn: Transaction,
    new_status: str,
    **values,
) -> bool:
    """
    Move a transaction out of "pending". Returns False if it already left.

    Does not commit. On success the in-memory `txn` is refreshed.
    """
    result = await db.execute(
        update(Transaction)
        .where(Transaction.id == txn.id, Transaction.status == "pending")
        .values(status=new_status, **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return False
    await db.refresh(txn)
    return True


async def _credit(db: AsyncSession, account_id: uuid.UUID, amount_cents: int) -> None:
    await db.execute(
        update(Account)
        .where(Account.id == account_id)
        .values(balance_cents=Account.balance_cents + amount_cents)
        .execution_options(synchronize_session=False)
    )


async def _debit(db: AsyncSession, account_id: uuid.UUID, amount_cents: int) -> bool:
    """Debit if, and only if, the balance covers it."""
    result = await db.execute(
        update(Account)
        .where(Account.id == account_id, Account.balance_cents >= amount_cents)
        .values(balance_cents=Account.balance_cents - amount_cents)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def receipt_already_credited(
    db: AsyncSession,
    receipt_code: str,
    exclude_transaction_id: uuid.UUID | None = None,
) -> bool:
    """True if a successful transaction other than the excluded one carries this receipt."""
    query = select(Transaction.id).where(
        Transaction.receipt_code == receipt_code,
        Transaction.status == "success",
    )
    if exclude_transaction_id is not None:
        query = query.where(Transaction.id != exclude_transaction_id)
    result = await db.execute(query.limit(1))
    return result.first() is not None


# ---------------------------------------------------------------------------
# Intents
# ---------------------------------------------------------------------------

async def open_intent(
    db: AsyncSession,
    kind: str,
    amount_cents: int,
    provider: str,
    account_id: uuid.UUID | None = None,
    phone: str | None = None,
    target_phone: str | None = None,
    description: str | None = None,
) -> Transaction:
    """
    Create and COMMIT a pending transaction before any provider call.

    Raises:
        InvalidAmountError: If the amount is below the minimum for `kind`.
        AccountNotFoundError: If account_id is given and doesn't exist.
    """
    check_minimum(kind, amount_cents)
    if account_id is not None:
        await account_service.get_account(db, account_id)

    txn = Transaction(
        account_id=account_id,
        kind=kind,
        direction=_DIRECTIONS[kind],
        amount_cents=amount_cents,
        provider=provider,
        reference=new_reference(kind),
        phone=phone,
        target_phone=target_phone,
        status="pending",
        description=description,
    )
    db.add(txn)
    await db.flush()
    await db.commit()

    logger.info("Opened %s intent %s for %d cents", kind, txn.reference, amount_cents)
    return txn


async def open_manual_deposit(
    db: AsyncSession,
    account_id: uuid.UUID,
    receipt_code: str,
    phone: str,
) -> Transaction:
    """
    Pending deposit awaiting an admin's verification.

    Its amount is unknown until the admin approves it, so it starts at zero.
    Does not commit; the verification row goes in the same transaction.
    """
    txn = Transaction(
        account_id=account_id,
        kind="deposit",
        direction="credit",
        amount_cents=0,
        provider="manual",
        reference=new_reference("deposit"),
        receipt_code=receipt_code,
        phone=phone,
        status="pending",
        description="Manual deposit verification",
    )
    db.add(txn)
    await db.flush()
    return txn


async def record_correlation(
    db: AsyncSession,
    txn: Transaction,
    correlation_id: str | None,
    payload: dict | None = None,
) -> None:
    """Attach the provider's id (and raw response) to an accepted intent."""
    values = {}
    if correlation_id:
        values["correlation_id"] = correlation_id
    if payload is not None:
        values["result_payload"] = _merge_payload(txn.result_payload, "initiate", payload)
    if not values:
        return
    await db.execute(
        update(Transaction)
        .where(Transaction.id == txn.id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    await db.refresh(txn)


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------

async def confirm_deposit(
    db: AsyncSession,
    txn: Transaction,
    ledger_settings: LedgerSettings,
    disbursement: DisbursementProvider,
    receipt_code: str | None = None,
    payload: dict | None = None,
    amount_cents: int | None = None,
    title: str = "Deposit Successful",
) -> bool:
    """
    Apply a successful deposit: credit amount + bonus, notify, then try the
    oldest queued purchase.

    Args:
        amount_cents: Overrides the requested amount (manual verification,
            where the admin enters what was actually received).

    A receipt code already credited on another transaction is never credited
    again: the deposit is failed instead.

    Returns:
        True if this call resolved the deposit, False if it was already
        resolved (duplicate callback) or its receipt was already credited.
    """
    code = receipt_code or txn.receipt_code
    if code and await receipt_already_credited(db, code, exclude_transaction_id=txn.id):
        logger.warning("Receipt %s already credited; failing deposit %s", code, txn.reference)
        await fail_transaction(
            db, txn, payload=payload,
            description=f"Receipt {code} was already credited",
        )
        return False

    amount = txn.amount_cents if amount_cents is None else amount_cents
    bonus = ledger_settings.deposit_bonus_for(amount)

    values = {
        "amount_cents": amount,
        "bonus_cents": bonus,
        "result_payload": _merge_payload(txn.result_payload, "confirmation", payload),
    }
    if receipt_code:
        values["receipt_code"] = receipt_code

    if not await _transition(db, txn, "success", **values):
        logger.info("Deposit %s already resolved; ignoring confirmation", txn.reference)
        return False

    await _credit(db, txn.account_id, amount + bonus)

    message = f"{format_kes(amount)} credited to your account!"
    if bonus:
        message = f"{format_kes(amount)} + {format_kes(bonus)} bonus credited to your account!"
    await notification_service.notify(db, txn.account_id, title, message, level="success")
    await db.commit()

    logger.info(
        "Deposit %s succeeded: credited %d cents (bonus %d) to account %s",
        txn.reference, amount + bonus, bonus, txn.account_id,
    )

    await settle_next_queued_purchase(db, txn.account_id, ledger_settings, disbursement)
    return True


async def fail_transaction(
    db: AsyncSession,
    txn: Transaction,
    payload: dict | None = None,
    description: str | None = None,
) -> bool:
    """
    Mark a pending transaction failed, refunding any reservation.

    Only airtime purchases reserve funds up front; for those the reserved
    amount goes back to the balance in the same database transaction.

    Returns:
        True if this call failed the transaction, False if it was already
        resolved.
    """
    values = {"result_payload": _merge_payload(txn.result_payload, "failure", payload)}
    if description:
        values["description"] = description

    if not await _transition(db, txn, "failed", **values):
        logger.info("Transaction %s already resolved; ignoring failure", txn.reference)
        return False

    if txn.kind == "airtime_purchase" and txn.account_id is not None:
        await _credit(db, txn.account_id, txn.amount_cents)
        logger.info("Refunded %d cents reserved by %s", txn.amount_cents, txn.reference)

        # A queued purchase whose delivery failed goes back in the queue
        requeued = await db.execute(
            update(QueuedPurchase)
            .where(QueuedPurchase.transaction_id == txn.id)
            .values(status="pending", transaction_id=None)
            .execution_options(synchronize_session=False)
        )
        if requeued.rowcount:
            logger.info("Re-queued purchase funded by %s", txn.reference)

    await db.commit()
    logger.info("Transaction %s failed", txn.reference)
    return True


async def confirm_airtime(
    db: AsyncSession,
    txn: Transaction,
    ledger_settings: LedgerSettings,
    result: ProviderResult,
) -> bool:
    """Confirm a reserved airtime purchase once the provider has delivered."""
    delivered = ledger_settings.airtime_value_for(txn.amount_cents)
    values = {
        "fee_cents": txn.amount_cents - delivered,
        "result_payload": _merge_payload(txn.result_payload, "disbursement", result.raw),
    }
    if result.correlation_id:
        values["correlation_id"] = result.correlation_id

    if not await _transition(db, txn, "success", **values):
        logger.info("Airtime %s already resolved; ignoring confirmation", txn.reference)
        return False

    await db.commit()
    logger.info("Airtime %s delivered %d cents to %s", txn.reference, delivered, txn.target_phone)
    return True


# ---------------------------------------------------------------------------
# Airtime purchases
# ---------------------------------------------------------------------------

async def _reserve_airtime(
    db: AsyncSession,
    account_id: uuid.UUID,
    target_phone: str,
    amount_cents: int,
    description: str,
) -> Transaction | None:
    """
    Debit the account and open a pending airtime purchase, committed together.

    Returns None (having written nothing) if the balance doesn't cover it.
    """
    if not await _debit(db, account_id, amount_cents):
        return None

    txn = Transaction(
        account_id=account_id,
        kind="airtime_purchase",
        direction="debit",
        amount_cents=amount_cents,
        provider="statum",
        reference=new_reference("airtime_purchase"),
        target_phone=target_phone,
        status="pending",
        description=description,
    )
    db.add(txn)
    await db.flush()
    await db.commit()
    return txn


async def _disburse(
    db: AsyncSession,
    txn: Transaction,
    ledger_settings: LedgerSettings,
    disbursement: DisbursementProvider,
) -> ProviderResult:
    """
    Send the airtime for a reserved purchase and apply the outcome.

    Never raises for provider problems; the caller inspects the result.
    """
    delivered = ledger_settings.airtime_value_for(txn.amount_cents)
    result = await disbursement.send_airtime(txn.target_phone, delivered)

    if result.state == ProviderState.SUCCESS:
        await confirm_airtime(db, txn, ledger_settings, result)
    elif result.state == ProviderState.PENDING:
        # Accepted for asynchronous delivery; the provider callback resolves it
        await record_correlation(db, txn, result.correlation_id, result.raw)
    else:
        if result.state == ProviderState.UNAVAILABLE:
            logger.warning("%s unavailable for %s: %s", disbursement.name, txn.reference, result.message)
        await fail_transaction(db, txn, payload=result.raw or {"error": result.message})

    return result


async def purchase_airtime(
    db: AsyncSession,
    account_id: uuid.UUID,
    target_phone: str,
    amount_cents: int,
    ledger_settings: LedgerSettings,
    disbursement: DisbursementProvider,
) -> Transaction:
    """
    Buy airtime from the wallet balance.

    If the balance is short, nothing is debited and the request is stored as
    a QueuedPurchase, to be settled by the next deposit.

    Raises:
        InvalidAmountError: Below the airtime minimum.
        AccountSuspendedError: The account is suspended.
        InsufficientFundsError: Balance too low; carries the queued purchase id.
        ProviderUnavailableError: Statum unreachable; the reservation was refunded.
        ProviderRejectedError: Statum declined; the reservation was refunded.
    """
    check_minimum("airtime_purchase", amount_cents)

    account = await account_service.get_account(db, account_id)
    if account.status != "active":
        raise AccountSuspendedError(account_id)

    txn = await _reserve_airtime(db, account_id, target_phone, amount_cents, "Airtime Purchase")
    if txn is None:
        available = await account_service.current_balance(db, account_id)
        queued = QueuedPurchase(
            account_id=account_id,
            target_phone=target_phone,
            amount_cents=amount_cents,
            status="pending",
        )
        db.add(queued)
        await db.flush()
        await db.commit()
        logger.info(
            "Queued %d cents of airtime for account %s (balance %d)",
            amount_cents, account_id, available,
        )
        raise InsufficientFundsError(account_id, amount_cents, available, queued.id)

    result = await _disburse(db, txn, ledger_settings, disbursement)

    if result.state == ProviderState.UNAVAILABLE:
        raise ProviderUnavailableError(disbursement.name, txn.id)
    if result.state == ProviderState.FAILED:
        raise ProviderRejectedError(result.message or "Airtime purchase failed")
    return txn


async def settle_next_queued_purchase(
    db: AsyncSession,
    account_id: uuid.UUID,
    ledger_settings: LedgerSettings,
    disbursement: DisbursementProvider,
) -> Transaction | None:
    """
    Attempt the account's oldest pending queued purchase.

    Called right after a deposit is credited. Exactly one entry is tried. If
    the balance still doesn't cover it, or the provider fails, it stays
    queued for the next deposit.

    The entry is claimed (pending -> completed) in the same database
    transaction as the reservation, so two deposits landing at once cannot
    both settle it. A failed disbursement puts it back to pending.
    """
    result = await db.execute(
        select(QueuedPurchase)
        .where(QueuedPurchase.account_id == account_id, QueuedPurchase.status == "pending")
        .order_by(QueuedPurchase.created_at.asc())
        .limit(1)
    )
    queued = result.scalar_one_or_none()
    if queued is None:
        return None

    balance = await account_service.current_balance(db, account_id)
    if balance < queued.amount_cents:
        logger.info("Queued purchase %s still short (%d < %d)", queued.id, balance, queued.amount_cents)
        return None

    claim = await db.execute(
        update(QueuedPurchase)
        .where(QueuedPurchase.id == queued.id, QueuedPurchase.status == "pending")
        .values(status="completed")
        .execution_options(synchronize_session=False)
    )
    if claim.rowcount != 1:
        return None

    txn = await _reserve_airtime(
        db, account_id, queued.target_phone, queued.amount_cents,
        "Auto-completed queued purchase",
    )
    if txn is None:
        await db.execute(
            update(QueuedPurchase)
            .where(QueuedPurchase.id == queued.id)
            .values(status="pending")
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return None

    outcome = await _disburse(db, txn, ledger_settings, disbursement)

    if outcome.state == ProviderState.SUCCESS:
        delivered = ledger_settings.airtime_value_for(txn.amount_cents)
        await db.execute(
            update(QueuedPurchase)
            .where(QueuedPurchase.id == queued.id)
            .values(transaction_id=txn.id)
            .execution_options(synchronize_session=False)
        )
        await notification_service.notify(
            db,
            account_id,
            "Pending Purchase Completed",
            f"{format_kes(delivered)} airtime sent to {txn.target_phone}",
            level="success",
        )
        await db.commit()
    elif outcome.state == ProviderState.PENDING:
        await db.execute(
            update(QueuedPurchase)
            .where(QueuedPurchase.id == queued.id)
            .values(transaction_id=txn.id)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    else:
        await db.execute(
            update(QueuedPurchase)
            .where(QueuedPurchase.id == queued.id)
            .values(status="pending")
            .execution_options(synchronize_session=False)
        )
        await db.commit()

    await db.refresh(queued)
    return txn


# ---------------------------------------------------------------------------
# Admin adjustments
# ---------------------------------------------------------------------------

async def adjust_balance(
    db: AsyncSession,
    account_id: uuid.UUID,
    amount_cents: int,
    reason: str | None = None,
) -> Transaction:
    """
    [ADMIN ONLY] Credit (positive) or debit (negative) an account directly.

    Recorded as a successful `adjustment` transaction.

    Raises:
        ValidationError: amount_cents is zero.
        InsufficientFundsError: A debit would take the balance below zero.
    """
    if amount_cents == 0:
        raise ValidationError("Adjustment amount must not be zero")

    await account_service.get_account(db, account_id)

    if amount_cents > 0:
        await _credit(db, account_id, amount_cents)
        direction = "credit"
    else:
        if not await _debit(db, account_id, -amount_cents):
            available = await account_service.current_balance(db, account_id)
            raise InsufficientFundsError(account_id, -amount_cents, available)
        direction = "debit"

    txn = Transaction(
        account_id=account_id,
        kind="adjustment",
        direction=direction,
        amount_cents=abs(amount_cents),
        provider="manual",
        reference=new_reference("adjustment"),
        status="success",
        description=reason or "Admin balance adjustment",
    )
    db.add(txn)
    await db.flush()
    await db.commit()

    logger.info("Adjusted account %s by %d cents: %s", account_id, amount_cents, txn.description)
    return txn


async def record_conversion(
    db: AsyncSession,
    account_id: uuid.UUID,
    cash_amount_cents: int,
    phone: str,
    transfer_code: str | None,
) -> Transaction:
    """
    Record an airtime-to-cash payout that was made outside the wallet.

    The balance is untouched. The airtime transfer code is kept in the
    payload, not as a receipt code, so it never collides with M-Pesa
    receipts. Does not commit.
    """
    txn = Transaction(
        account_id=account_id,
        kind="conversion",
        direction="credit",
        amount_cents=cash_amount_cents,
        provider="manual",
        reference=new_reference("conversion"),
        phone=phone,
        status="success",
        description="Airtime to Cash conversion",
        result_payload={"transfer_code": transfer_code},
    )
    db.add(txn)
    await db.flush()
    logger.info("Recorded conversion payout %s of %d cents", txn.reference, cash_amount_cents)
    return txn


# ---------------------------------------------------------------------------
# Direct purchases
# ---------------------------------------------------------------------------

async def complete_direct_purchase(
    db: AsyncSession,
    txn: Transaction,
    ledger_settings: LedgerSettings,
    disbursement: DisbursementProvider,
    receipt_code: str | None = None,
    payload: dict | None = None,
) -> bool:
    """
    The payer's STK push succeeded: deliver the airtime to the target phone.

    No wallet is involved. If delivery fails the money has already left the
    payer, so the transaction is failed with a description that flags it
    for manual follow-up.

    The payment is claimed (receipt recorded) and committed BEFORE Statum is
    called, so a retried callback cannot trigger a second delivery.

    Returns:
        False if another delivery already claimed or resolved this purchase.
    """
    claim = await db.execute(
        update(Transaction)
        .where(
            Transaction.id == txn.id,
            Transaction.status == "pending",
            Transaction.receipt_code.is_(None),
        )
        .values(
            receipt_code=receipt_code or "UNCONFIRMED",
            result_payload=_merge_payload(txn.result_payload, "payment", payload),
        )
        .execution_options(synchronize_session=False)
    )
    if claim.rowcount != 1:
        logger.info("Direct purchase %s already claimed; ignoring callback", txn.reference)
        return False
    await db.commit()
    await db.refresh(txn)

    delivered = ledger_settings.airtime_value_for(txn.amount_cents)
    result = await disbursement.send_airtime(txn.target_phone, delivered)

    if result.state == ProviderState.PENDING:
        # Statum's request id becomes the key its callback is matched on
        await record_correlation(db, txn, result.correlation_id, result.raw)
        logger.info("Direct purchase %s awaiting delivery (%s)", txn.reference, result.correlation_id)
        return True

    await _finish_direct_purchase(db, txn, ledger_settings, result)
    return True


async def _finish_direct_purchase(
    db: AsyncSession,
    txn: Transaction,
    ledger_settings: LedgerSettings,
    result: ProviderResult,
) -> bool:
    delivered = ledger_settings.airtime_value_for(txn.amount_cents)
    payload_with_airtime = _merge_payload(txn.result_payload, "disbursement", result.raw)

    if result.state == ProviderState.SUCCESS:
        resolved = await _transition(
            db, txn, "success",
            fee_cents=txn.amount_cents - delivered,
            result_payload=payload_with_airtime,
        )
        await db.commit()
        if resolved:
            logger.info("Direct purchase %s delivered %d cents to %s", txn.reference, delivered, txn.target_phone)
        return resolved

    resolved = await _transition(
        db, txn, "failed",
        result_payload=payload_with_airtime,
        description="Payment received but airtime delivery failed",
    )
    await db.commit()
    if resolved:
        logger.error(
            "Direct purchase %s paid (receipt %s) but airtime delivery failed: %s",
            txn.reference, txn.receipt_code, result.message,
        )
    return resolved


async def resolve_disbursement_callback(
    db: AsyncSession,
    txn: Transaction,
    ledger_settings: LedgerSettings,
    succeeded: bool,
    payload: dict,
) -> bool:
    """Resolve a top-up Statum accepted for asynchronous delivery."""
    state = ProviderState.SUCCESS if succeeded else ProviderState.FAILED
    result = ProviderResult(state=state, raw=payload, message=payload.get("description"))

    if txn.kind == "direct_purchase":
        return await _finish_direct_purchase(db, txn, ledger_settings, result)
    if succeeded:
        return await confirm_airtime(db, txn, ledger_settings, result)
    return await fail_transaction(db, txn, payload=payload)
