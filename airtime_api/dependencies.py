"""
FastAPI dependencies for authentication, authorization and collaborators.

Dependencies are reusable functions that FastAPI injects into route handlers.
They form a dependency chain that enforces both authentication and
role-based access control:

  get_current_user (JWT -> User)
      ├── get_current_account (User -> Account)  [MEMBER role]
      └── require_admin (User -> User)           [ADMIN role]

Role-based access control:
  - MEMBER: Can only access their own wallet. Member endpoints use
    get_current_account, which inherently scopes every query to the
    authenticated user's account.
  - ADMIN: Uses the /admin/* console. Admins have no wallet of their own
    and are blocked from member endpoints.

The same mechanism provides the external collaborators:

  - get_collection_provider / get_disbursement_provider: the PayNecta and
    Statum adapters, built once per process from config. Tests override
    these with in-memory fakes via app.dependency_overrides.
  - get_ledger_settings: a fresh LedgerSettings snapshot per request, so an
    admin's change applies to the next outcome processed.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from airtime_api.config import settings
from airtime_api.database import get_db
from airtime_api.models.account import Account
from airtime_api.models.user import User, UserType
from airtime_api.providers import (
    CollectionProvider,
    DisbursementProvider,
    PayNectaProvider,
    StatumProvider,
)
from airtime_api.security import read_session_token
from airtime_api.services import settings_service
from airtime_api.services.settings_service import LedgerSettings


# OAuth2PasswordBearer tells FastAPI where to look for the token:
# the "Authorization: Bearer <token>" header. The tokenUrl points to
# the login endpoint (used by Swagger UI's "Authorize" button).
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Extract and validate the JWT token, then return the corresponding User.

    This dependency is the first line of defense: if the token is missing,
    expired, or tampered with, the request is rejected with 401.

    Raises:
        HTTPException 401: If the token is invalid or the user doesn't exist.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        user_id = read_session_token(token)
    except (JWTError, ValueError):
        raise credentials_exception

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        raise credentials_exception

    return user


async def get_current_account(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Account:
    """
    Get the wallet Account for the authenticated member.

    IMPORTANT: Admin users are explicitly blocked from member endpoints.
    Admins work through /admin/*, which never moves money on their own
    behalf.

    Raises:
        HTTPException 403: If the user is an admin.
        HTTPException 404: If the user has no wallet account.
    """
    if user.user_type == UserType.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin accounts cannot access member endpoints. "
                   "Use /admin/* endpoints instead.",
        )

    result = await db.execute(select(Account).where(Account.user_id == user.id))
    account = result.scalar_one_or_none()

    if account is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Account not found",
        )

    return account


async def require_admin(
    user: User = Depends(get_current_user),
) -> User:
    """
    Require the authenticated user to have the ADMIN role.

    Raises:
        HTTPException 403: If the user is not an admin.
    """
    if user.user_type != UserType.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


# ---------------------------------------------------------------------------
# Providers and settings
# ---------------------------------------------------------------------------

_collection_provider: CollectionProvider | None = None
_disbursement_provider: DisbursementProvider | None = None


def get_collection_provider() -> CollectionProvider:
    """The process-wide PayNecta adapter (one shared HTTP connection pool)."""
    global _collection_provider
    if _collection_provider is None:
        _collection_provider = PayNectaProvider(
            base_url=settings.PAYNECTA_BASE_URL,
            api_key=settings.PAYNECTA_API_KEY,
            email=settings.PAYNECTA_EMAIL,
            timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        )
    return _collection_provider


def get_disbursement_provider() -> DisbursementProvider:
    """The process-wide Statum adapter."""
    global _disbursement_provider
    if _disbursement_provider is None:
        _disbursement_provider = StatumProvider(
            base_url=settings.STATUM_BASE_URL,
            consumer_key=settings.STATUM_CONSUMER_KEY,
            consumer_secret=settings.STATUM_CONSUMER_SECRET,
            timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        )
    return _disbursement_provider


async def close_providers() -> None:
    """Close provider HTTP clients. Called from the app lifespan on shutdown."""
    global _collection_provider, _disbursement_provider
    if _collection_provider is not None:
        await _collection_provider.close()
        _collection_provider = None
    if _disbursement_provider is not None:
        await _disbursement_provider.close()
        _disbursement_provider = None


async def get_ledger_settings(
    db: AsyncSession = Depends(get_db),
) -> LedgerSettings:
    return await settings_service.load_ledger_settings(db)
