"""
Authentication service — signup and login business logic.

This module contains the core auth logic, separated from HTTP concerns.
The router calls these functions and translates the results into HTTP
responses. This separation means the business logic can be tested
without spinning up a web server.

Signup flow:
  1. Check the email and username are free
  2. Hash the password with Argon2id
  3. Create User + wallet Account + welcome notification in one transaction
  4. Return a JWT token so the user is immediately logged in

Login flow:
  1. Look up user by email
  2. Verify password against stored hash
  3. Stamp the account's last_login_at
  4. Return a JWT token

Security notes:
  - Passwords are hashed before storage (never stored in plaintext)
  - Login returns the same error for "wrong password" and "email not found"
    to prevent user enumeration attacks
  - JWT tokens are stateless — no server-side session storage needed
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from airtime_api.exceptions import (
    DuplicateEmailError,
    DuplicateUsernameError,
    InvalidCredentialsError,
)
from airtime_api.models.account import Account
from airtime_api.models.user import User, UserType
from airtime_api.security import hash_password, issue_session_token, verify_password
from airtime_api.services import account_service, notification_service

logger = logging.getLogger(__name__)


async def signup(
    db: AsyncSession,
    email: str,
    password: str,
    username: str,
    phone: str,
) -> tuple[User, Account, str]:
    """
    Register a new member and open their wallet account.

    Both records (and the welcome notification) are created in a single
    transaction — if any fails, none is persisted.

    Args:
        db: Database session.
        email: User's email (must be unique).
        password: Plaintext password (will be hashed before storage).
        username: Public handle (must be unique).
        phone: Contact number, already in 254 form.

    Returns:
        Tuple of (User, Account, JWT token string).

    Raises:
        DuplicateEmailError: If the email is already registered.
        DuplicateUsernameError: If the username is taken.
    """
    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        raise DuplicateEmailError(email)

    if await account_service.get_account_by_username(db, username):
        raise DuplicateUsernameError(username)

    user = User(
        email=email,
        hashed_password=hash_password(password),
        user_type=UserType.MEMBER,
    )
    db.add(user)
    # Flush to get the user.id assigned (needed for the FK below)
    await db.flush()

    account = Account(
        user_id=user.id,
        username=username,
        email=email,
        phone=phone,
    )
    db.add(account)
    await db.flush()

    await notification_service.notify(
        db,
        account.id,
        "Welcome!",
        f"Welcome {username}! Deposit KES 50 or more and get a bonus.",
        level="success",
    )

    token = issue_session_token(user.id, user.user_type.value)

    logger.info("New member %s registered", username)
    return user, account, token


async def login(
    db: AsyncSession,
    email: str,
    password: str,
) -> tuple[User, str]:
    """
    Authenticate a user and return a JWT token.

    Security: Returns the same error for both "wrong password" and
    "email not found" to prevent attackers from enumerating valid emails.

    Raises:
        InvalidCredentialsError: If email doesn't exist or password is wrong.
    """
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    # Same error for both cases: prevents user enumeration
    if not user:
        raise InvalidCredentialsError()

    if not verify_password(password, user.hashed_password):
        raise InvalidCredentialsError()

    if not user.is_active:
        raise InvalidCredentialsError()

    account = await account_service.get_account_for_user(db, user.id)
    if account is not None:
        account.last_login_at = datetime.now(timezone.utc)
        await db.flush()

    token = issue_session_token(user.id, user.user_type.value)
    return user, token
