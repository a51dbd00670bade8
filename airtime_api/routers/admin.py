"""
Admin router — the operations console.

All endpoints require ADMIN role.

Endpoints:
  GET  /admin/users                              — List all member accounts
  GET  /admin/users/{account_id}                 — Get any account
  GET  /admin/users/{account_id}/balance         — Cached vs. computed balance
  PUT  /admin/users/{account_id}/status          — Suspend / reactivate
  PUT  /admin/users/{account_id}/balance         — Credit or debit adjustment
  GET  /admin/transactions                       — List ALL transactions
  GET  /admin/transactions/{transaction_id}      — Get any transaction
  GET  /admin/verifications                      — Manual deposit requests
  PUT  /admin/verifications/{id}/approve         — Credit a verified deposit
  PUT  /admin/verifications/{id}/reject          — Reject it
  GET  /admin/settings                           — Business settings
  PUT  /admin/settings/{key}                     — Change a setting
  POST /admin/notifications                      — Message one member or all
  GET  /admin/conversions                        — Airtime-to-cash requests
  PUT  /admin/conversions/{id}/complete          — Record the cash payout
  GET  /admin/stats                              — Dashboard totals

Every write goes through the same services the member endpoints use, so
admin actions obey the same ledger rules (no negative balances, terminal
states are final).

By consolidating all admin routes in one router, we avoid route-ordering
conflicts that arise when multiple routers share a prefix and have
overlapping parameterized paths.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from airtime_api.database import get_db
from airtime_api.dependencies import (
    get_disbursement_provider,
    get_ledger_settings,
    require_admin,
)
from airtime_api.models.user import User
from airtime_api.providers import DisbursementProvider
from airtime_api.schemas.account import (
    AccountResponse,
    AccountStatusUpdateRequest,
    BalanceAdjustmentRequest,
    BalanceResponse,
)
from airtime_api.schemas.conversion import ConversionResponse
from airtime_api.schemas.notification import NotificationCreateRequest, NotificationResponse
from airtime_api.schemas.payment import VerificationApproveRequest, VerificationResponse
from airtime_api.schemas.settings import SettingResponse, SettingUpdateRequest
from airtime_api.schemas.transaction import StatsResponse, TransactionResponse
from airtime_api.services import (
    account_service,
    conversion_service,
    ledger_service,
    notification_service,
    settings_service,
    transaction_service,
    verification_service,
)
from airtime_api.services.settings_service import LedgerSettings

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Member accounts
# ---------------------------------------------------------------------------

@router.get(
    "/users",
    response_model=list[AccountResponse],
    summary="[Admin] List all accounts",
)
async def admin_list_accounts(
    status: str | None = Query(None, description="Filter by status: active, suspended"),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """List every member account, newest first."""
    return await account_service.admin_get_all_accounts(db, status_filter=status)


@router.get(
    "/users/{account_id}",
    response_model=AccountResponse,
    summary="[Admin] Get any account",
)
async def admin_get_account(
    account_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await account_service.get_account(db, account_id)


@router.get(
    "/users/{account_id}/balance",
    response_model=BalanceResponse,
    summary="[Admin] Get any account's balance",
)
async def admin_get_balance(
    account_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Cached balance vs. balance recomputed from the transaction history."""
    await account_service.get_account(db, account_id)
    return await account_service.get_balance(db, account_id)


@router.put(
    "/users/{account_id}/status",
    response_model=AccountResponse,
    summary="[Admin] Suspend or reactivate an account",
)
async def admin_set_account_status(
    account_id: uuid.UUID,
    request: AccountStatusUpdateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Suspended members keep their balance but cannot buy airtime."""
    account = await account_service.admin_set_status(db, account_id, request.status)
    logger.info("Admin %s set account %s to %s", admin.email, account_id, request.status)
    return account


@router.put(
    "/users/{account_id}/balance",
    response_model=TransactionResponse,
    summary="[Admin] Adjust an account's balance",
)
async def admin_adjust_balance(
    account_id: uuid.UUID,
    request: BalanceAdjustmentRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Credit (positive `amount_cents`) or debit (negative) an account.

    Recorded as an `adjustment` transaction. A debit larger than the balance
    is refused with 422 `insufficient_funds`.
    """
    return await ledger_service.adjust_balance(
        db, account_id, request.amount_cents, request.reason
    )


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

@router.get(
    "/transactions",
    response_model=list[TransactionResponse],
    summary="[Admin] List all transactions",
)
async def admin_list_transactions(
    status: str | None = Query(None, description="Filter by status: pending, success, failed"),
    kind: str | None = Query(None, description="Filter by kind"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    List ALL transactions, including anonymous direct purchases.

    Supports filtering by status and kind, plus pagination.
    """
    return await transaction_service.admin_get_all_transactions(
        db=db,
        status_filter=status,
        kind_filter=kind,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/transactions/{transaction_id}",
    response_model=TransactionResponse,
    summary="[Admin] Get any transaction",
)
async def admin_get_transaction(
    transaction_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await transaction_service.admin_get_transaction(db, transaction_id)


# ---------------------------------------------------------------------------
# Manual deposit verification
# ---------------------------------------------------------------------------

@router.get(
    "/verifications",
    response_model=list[VerificationResponse],
    summary="[Admin] List deposit verification requests",
)
async def admin_list_verifications(
    status: str | None = Query("pending", description="pending, verified or failed"),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await verification_service.list_verifications(db, status_filter=status)


@router.put(
    "/verifications/{verification_id}/approve",
    response_model=VerificationResponse,
    summary="[Admin] Approve a deposit verification",
)
async def admin_approve_verification(
    verification_id: uuid.UUID,
    request: VerificationApproveRequest,
    admin: User = Depends(require_admin),
    disbursement: DisbursementProvider = Depends(get_disbursement_provider),
    ledger_settings: LedgerSettings = Depends(get_ledger_settings),
    db: AsyncSession = Depends(get_db),
):
    """
    Credit the amount actually received, plus the deposit bonus if it
    qualifies. Returns 409 if the request was already resolved.
    """
    return await verification_service.approve_verification(
        db, verification_id, request.amount_cents, ledger_settings, disbursement
    )


@router.put(
    "/verifications/{verification_id}/reject",
    response_model=VerificationResponse,
    summary="[Admin] Reject a deposit verification",
)
async def admin_reject_verification(
    verification_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await verification_service.reject_verification(db, verification_id)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@router.get(
    "/settings",
    response_model=list[SettingResponse],
    summary="[Admin] List business settings",
)
async def admin_list_settings(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await settings_service.list_settings(db)


@router.put(
    "/settings/{key}",
    response_model=SettingResponse,
    summary="[Admin] Update a business setting",
)
async def admin_update_setting(
    key: str,
    request: SettingUpdateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Takes effect for the next outcome processed, including callbacks for
    transactions opened before the change.
    """
    return await settings_service.update_setting(db, key, request.value)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

@router.post(
    "/notifications",
    response_model=NotificationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="[Admin] Send a notification",
)
async def admin_send_notification(
    request: NotificationCreateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Send to one account, or omit `account_id` to broadcast to everyone."""
    if request.account_id is not None:
        await account_service.get_account(db, request.account_id)
    return await notification_service.notify(
        db, request.account_id, request.title, request.message, level=request.level
    )


# ---------------------------------------------------------------------------
# Airtime-to-cash
# ---------------------------------------------------------------------------

@router.get(
    "/conversions",
    response_model=list[ConversionResponse],
    summary="[Admin] List conversion requests",
)
async def admin_list_conversions(
    status: str | None = Query(None, description="pending, verified or completed"),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await conversion_service.admin_list_conversions(db, status_filter=status)


@router.put(
    "/conversions/{conversion_id}/complete",
    response_model=ConversionResponse,
    summary="[Admin] Mark a conversion paid",
)
async def admin_complete_conversion(
    conversion_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Record that the cash was sent by M-Pesa and notify the member."""
    return await conversion_service.admin_complete_conversion(db, conversion_id)


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

@router.get(
    "/stats",
    response_model=StatsResponse,
    summary="[Admin] Dashboard totals",
)
async def admin_stats(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await transaction_service.admin_get_stats(db)
