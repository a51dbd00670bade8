"""
Accounts router — the member's own wallet account.

Member endpoints (require JWT, scoped to the authenticated user):
    GET    /accounts/me               — Account details
    GET    /accounts/me/balance       — Cached vs. computed balance
    PUT    /accounts/me/preferences   — Language / theme

Every member has exactly one account, created at signup, so these routes
take no account id: there is nothing to enumerate and nobody else's
account can be named. Admin moderation lives in the admin router.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from airtime_api.database import get_db
from airtime_api.dependencies import get_current_account
from airtime_api.models.account import Account
from airtime_api.schemas.account import (
    AccountResponse,
    BalanceResponse,
    PreferencesUpdateRequest,
)
from airtime_api.services import account_service

router = APIRouter()


@router.get(
    "/me",
    response_model=AccountResponse,
    summary="Get own account",
)
async def get_my_account(
    account: Account = Depends(get_current_account),
):
    """Get the authenticated member's wallet account, including its balance."""
    return account


@router.get(
    "/me/balance",
    response_model=BalanceResponse,
    summary="Get own balance",
)
async def get_my_balance(
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """
    Get the balance, both cached and recomputed from transaction history.

    Returns both values and a `match` flag; a mismatch signals a data
    integrity issue worth investigating.
    """
    return await account_service.get_balance(db, account.id)


@router.put(
    "/me/preferences",
    response_model=AccountResponse,
    summary="Update preferences",
)
async def update_my_preferences(
    request: PreferencesUpdateRequest,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """
    Update UI preferences.

    - **language**: "en" or "sw"
    - **theme**: "light" or "dark"
    """
    return await account_service.update_preferences(
        db, account, language=request.language, theme=request.theme
    )
