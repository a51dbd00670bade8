"""
Authentication router — signup and login endpoints.

These are public (unauthenticated), as are the provider callbacks, direct
airtime purchase and float status. Everything else requires a valid JWT.

Endpoints:
  POST /auth/signup  — Register a new user and get a token
  POST /auth/login   — Authenticate and get a token

Security audit notes:
  - Plaintext passwords exist only in memory during request processing;
    they are hashed before any database operation and never logged.
  - JWT tokens appear only in response bodies, which are not logged by
    uvicorn (it logs method, path, and status code only).
  - SQLAlchemy's echo mode (DEBUG=True) logs SQL statements, but only
    the Argon2 hash is included in INSERT statements — never the plaintext.
  - No request body logging middleware is installed, so POST bodies
    containing passwords are not written to any log file.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from airtime_api.database import get_db
from airtime_api.schemas.auth import (
    UserSignupRequest,
    UserLoginRequest,
    TokenResponse,
    SignupResponse,
)
from airtime_api.services import auth_service

router = APIRouter()


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def signup(
    request: UserSignupRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Register a new member.

    Creates a User (authentication identity), a wallet Account with a zero
    balance and a welcome notification in a single atomic transaction.
    Returns a JWT token so the user is immediately logged in after signup.

    - **email**: Must be a valid email format and not already registered
    - **password**: Minimum 8 characters
    - **username**: 3-50 letters, digits, dots or underscores; must be unique
    - **phone**: Kenyan number in any common format (07..., +254..., 254...)
    """
    user, account, token = await auth_service.signup(
        db=db,
        email=request.email,
        password=request.password,
        username=request.username,
        phone=request.phone,
    )

    return SignupResponse(
        user_id=user.id,
        account_id=account.id,
        email=user.email,
        username=account.username,
        user_type=user.user_type.value,
        token=token,
    )


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Authenticate and get a token",
)
async def login(
    request: UserLoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Authenticate with email and password.

    Returns a JWT bearer token that must be included in the Authorization
    header for all subsequent requests:

        Authorization: Bearer <token>

    The token expires after ACCESS_TOKEN_EXPIRE_MINUTES (default: 30).
    Members also get their last_login_at stamped.
    """
    user, token = await auth_service.login(
        db=db,
        email=request.email,
        password=request.password,
    )

    return TokenResponse(token=token)
