"""
Account service — wallet account lookups and profile updates.

This module handles:
  - Account retrieval (by id, by owning user, by username)
  - Balance verification (cached vs. computed from transactions)
  - Preferences (language, theme)
  - Admin moderation (listing, suspending/reactivating)

It NEVER writes balance_cents; that belongs to ledger_service.

Ownership enforcement:
  Member endpoints resolve the account from the authenticated user (see
  dependencies.get_current_account), so there is no way for a member to
  name somebody else's account.

Admin access:
  Functions prefixed with `admin_` are not scoped. The router layer enforces
  that only ADMIN users can call them.
"""

import uuid

from sqlalchemy import select, func, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from airtime_api.exceptions import AccountNotFoundError
from airtime_api.models.account import Account
from airtime_api.models.transaction import Transaction


async def get_account(db: AsyncSession, account_id: uuid.UUID) -> Account:
    """
    Get an account by id.

    Raises:
        AccountNotFoundError: If the account doesn't exist.
    """
    result = await db.execute(select(Account).where(Account.id == account_id))
    account = result.scalar_one_or_none()

    if account is None:
        raise AccountNotFoundError(account_id)

    return account


async def get_account_for_user(db: AsyncSession, user_id: uuid.UUID) -> Account | None:
    result = await db.execute(select(Account).where(Account.user_id == user_id))
    return result.scalar_one_or_none()


async def get_account_by_username(db: AsyncSession, username: str) -> Account | None:
    result = await db.execute(select(Account).where(Account.username == username))
    return result.scalar_one_or_none()


async def current_balance(db: AsyncSession, account_id: uuid.UUID) -> int:
    """
    Read the balance straight from the database.

    Bypasses the session identity map, which may hold a stale copy after
    the ledger's row-level UPDATE statements.
    """
    result = await db.execute(
        select(Account.balance_cents).where(Account.id == account_id)
    )
    balance = result.scalar_one_or_none()
    if balance is None:
        raise AccountNotFoundError(account_id)
    return balance


async def update_preferences(
    db: AsyncSession,
    account: Account,
    language: str | None = None,
    theme: str | None = None,
) -> Account:
    """Update UI preferences; None leaves a field unchanged."""
    if language is not None:
        account.language = language
    if theme is not None:
        account.theme = theme
    await db.flush()
    return account


async def get_balance(db: AsyncSession, account_id: uuid.UUID) -> dict:
    """
    Get the account balance — both cached and computed from transactions.

    A mismatch between the two signals a data integrity issue.

    Returns:
        Dict with balance_cents, computed_balance_cents, match.
    """
    balance_cents = await current_balance(db, account_id)
    computed_balance_cents = await _compute_balance_from_transactions(db, account_id)

    return {
        "account_id": account_id,
        "balance_cents": balance_cents,
        "computed_balance_cents": computed_balance_cents,
        "match": balance_cents == computed_balance_cents,
    }


async def _compute_balance_from_transactions(
    db: AsyncSession,
    account_id: uuid.UUID,
) -> int:
    """
    Recompute the balance from the transaction history.

    What counts:
      + successful deposits, including their bonus
      + successful credit adjustments
      - airtime purchases that are pending or successful (a pending purchase
        has already reserved its funds; a failed one was refunded)
      - successful debit adjustments

    Direct purchases and conversions never touch the wallet.
    """
    credits_result = await db.execute(
        select(
            func.coalesce(
                func.sum(Transaction.amount_cents + Transaction.bonus_cents), 0
            )
        ).where(
            Transaction.account_id == account_id,
            Transaction.status == "success",
            or_(
                Transaction.kind == "deposit",
                and_(Transaction.kind == "adjustment", Transaction.direction == "credit"),
            ),
        )
    )
    total_credits = credits_result.scalar()

    debits_result = await db.execute(
        select(func.coalesce(func.sum(Transaction.amount_cents), 0)).where(
            Transaction.account_id == account_id,
            or_(
                and_(
                    Transaction.kind == "airtime_purchase",
                    Transaction.status.in_(("pending", "success")),
                ),
                and_(
                    Transaction.kind == "adjustment",
                    Transaction.direction == "debit",
                    Transaction.status == "success",
                ),
            ),
        )
    )
    total_debits = debits_result.scalar()

    return total_credits - total_debits


# ---------------------------------------------------------------------------
# Admin functions
# ---------------------------------------------------------------------------

async def admin_get_all_accounts(
    db: AsyncSession,
    status_filter: str | None = None,
) -> list[Account]:
    """[ADMIN ONLY] List all accounts, newest first."""
    query = select(Account).order_by(Account.created_at.desc())
    if status_filter:
        query = query.where(Account.status == status_filter)
    result = await db.execute(query)
    return list(result.scalars().all())


async def admin_set_status(
    db: AsyncSession,
    account_id: uuid.UUID,
    status: str,
) -> Account:
    """
    [ADMIN ONLY] Suspend or reactivate an account.

    Suspended accounts keep their balance and history but cannot buy
    airtime. Accounts are never deleted.
    """
    account = await get_account(db, account_id)
    account.status = status
    await db.flush()
    return account
