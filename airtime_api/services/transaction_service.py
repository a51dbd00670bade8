"""
Transaction service — read access to the transaction history.

All writes go through ledger_service; this module only queries.

Ownership:
  Member functions filter on the caller's account_id, so a transaction that
  belongs to someone else is indistinguishable from one that doesn't exist
  (both raise TransactionNotFoundError).

Admin read-only functions:
  Functions prefixed with `admin_` provide read access to all transactions
  without ownership scoping. These are called from admin-only endpoints.
"""

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from airtime_api.exceptions import TransactionNotFoundError
from airtime_api.models.account import Account
from airtime_api.models.transaction import Transaction
from airtime_api.models.user import User


async def get_transactions(
    db: AsyncSession,
    account_id: uuid.UUID,
    status_filter: str | None = None,
    kind_filter: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Transaction]:
    """
    List transactions for an account, with optional filters.

    Args:
        db: Database session.
        account_id: The authenticated member's account.
        status_filter: Optional filter by status ("pending", "success", "failed").
        kind_filter: Optional filter by kind ("deposit", "airtime_purchase", ...).
        limit: Max number of results (default 50).
        offset: Number of results to skip (for pagination).

    Returns:
        List of Transaction instances, ordered by created_at descending.
    """
    query = (
        select(Transaction)
        .where(Transaction.account_id == account_id)
        .order_by(Transaction.created_at.desc())
        .limit(limit)
        .offset(offset)
    )

    if status_filter:
        query = query.where(Transaction.status == status_filter)
    if kind_filter:
        query = query.where(Transaction.kind == kind_filter)

    result = await db.execute(query)
    return list(result.scalars().all())


async def get_transaction(
    db: AsyncSession,
    account_id: uuid.UUID,
    transaction_id: uuid.UUID,
) -> Transaction:
    """
    Get a single transaction owned by the account.

    Raises:
        TransactionNotFoundError: If it doesn't exist or isn't theirs.
    """
    result = await db.execute(
        select(Transaction).where(
            Transaction.id == transaction_id,
            Transaction.account_id == account_id,
        )
    )
    txn = result.scalar_one_or_none()

    if txn is None:
        raise TransactionNotFoundError(transaction_id)

    return txn


# ---------------------------------------------------------------------------
# Admin read-only functions
# ---------------------------------------------------------------------------

async def admin_get_all_transactions(
    db: AsyncSession,
    status_filter: str | None = None,
    kind_filter: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[Transaction]:
    """
    [ADMIN ONLY] List ALL transactions, including anonymous direct purchases.

    Supports filtering by status and kind, plus pagination.
    """
    query = (
        select(Transaction)
        .order_by(Transaction.created_at.desc())
        .limit(limit)
        .offset(offset)
    )

    if status_filter:
        query = query.where(Transaction.status == status_filter)
    if kind_filter:
        query = query.where(Transaction.kind == kind_filter)

    result = await db.execute(query)
    return list(result.scalars().all())


async def admin_get_transaction(
    db: AsyncSession,
    transaction_id: uuid.UUID,
) -> Transaction:
    """[ADMIN ONLY] Get any single transaction by ID without ownership check."""
    txn = await db.get(Transaction, transaction_id)
    if txn is None:
        raise TransactionNotFoundError(transaction_id)
    return txn


async def admin_get_stats(db: AsyncSession) -> dict:
    """
    [ADMIN ONLY] Dashboard totals.

    Deposits and airtime count successful transactions only; the balance
    total is what the platform currently owes its members.
    """
    users = await db.execute(select(func.count(User.id)))

    deposits = await db.execute(
        select(func.coalesce(func.sum(Transaction.amount_cents), 0)).where(
            Transaction.kind == "deposit",
            Transaction.status == "success",
        )
    )
    airtime = await db.execute(
        select(func.coalesce(func.sum(Transaction.amount_cents), 0)).where(
            Transaction.kind.in_(("airtime_purchase", "direct_purchase")),
            Transaction.status == "success",
        )
    )
    balances = await db.execute(select(func.coalesce(func.sum(Account.balance_cents), 0)))

    return {
        "total_users": users.scalar(),
        "total_deposits_cents": deposits.scalar(),
        "total_airtime_cents": airtime.scalar(),
        "total_balance_cents": balances.scalar(),
    }
