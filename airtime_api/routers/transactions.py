"""
Transactions router — the member's own transaction history.

Member endpoints (scoped to the authenticated user's account):
  GET  /transactions                       — List transactions (with filters)
  GET  /transactions/statement.pdf         — Full history as a PDF
  GET  /transactions/{id}                  — Get a single transaction
  GET  /transactions/{id}/receipt.pdf      — Single-transaction PDF receipt

Transactions are created by the ledger (deposits, purchases, ...); there is
no endpoint to create one directly.

Admin endpoints are in the dedicated admin router (airtime_api/routers/admin.py)
to avoid route-ordering conflicts with parameterized paths.
"""

import uuid

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from airtime_api.database import get_db
from airtime_api.dependencies import get_current_account
from airtime_api.models.account import Account
from airtime_api.schemas.transaction import TransactionResponse
from airtime_api.services import receipt_service, transaction_service

router = APIRouter()


def _pdf_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get(
    "",
    response_model=list[TransactionResponse],
    summary="List own transactions",
)
async def list_transactions(
    status: str | None = Query(None, description="Filter by status: pending, success, failed"),
    kind: str | None = Query(
        None,
        description="Filter by kind: deposit, airtime_purchase, adjustment, conversion",
    ),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """
    List your transactions, newest first.

    Supports optional filtering by status and kind, plus pagination.
    """
    return await transaction_service.get_transactions(
        db=db,
        account_id=account.id,
        status_filter=status,
        kind_filter=kind,
        limit=limit,
        offset=offset,
    )


# Declared before /{transaction_id} so "statement.pdf" isn't parsed as an id
@router.get(
    "/statement.pdf",
    response_class=Response,
    summary="Download transaction history as PDF",
)
async def download_statement(
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """Every transaction on the account, newest first, as a PDF."""
    transactions = await transaction_service.get_transactions(
        db=db, account_id=account.id, limit=10_000
    )
    await db.refresh(account)
    pdf = receipt_service.render_statement(account, transactions)
    return _pdf_response(pdf, f"transactions_{account.username}.pdf")


@router.get(
    "/{transaction_id}",
    response_model=TransactionResponse,
    summary="Get a single transaction",
)
async def get_transaction(
    transaction_id: uuid.UUID,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """Get details for a specific transaction."""
    return await transaction_service.get_transaction(
        db=db,
        account_id=account.id,
        transaction_id=transaction_id,
    )


@router.get(
    "/{transaction_id}/receipt.pdf",
    response_class=Response,
    summary="Download a transaction receipt as PDF",
)
async def download_receipt(
    transaction_id: uuid.UUID,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    txn = await transaction_service.get_transaction(
        db=db,
        account_id=account.id,
        transaction_id=transaction_id,
    )
    pdf = receipt_service.render_receipt(account, txn)
    return _pdf_response(pdf, f"receipt_{txn.reference}.pdf")
