"""
Custom exception classes and FastAPI exception handlers.

The service layer raises domain-specific errors without importing HTTP
concepts; the handlers registered here translate them into consistent JSON
responses of the form {"detail": ..., "error_type": ...}.

Exception hierarchy:
    LedgerAPIError (base)
    ├── ValidationError            — bad input
    │   └── InvalidAmountError     — amount below the purpose-specific minimum
    ├── ResourceNotFoundError      — generic 404
    │   ├── AccountNotFoundError
    │   └── TransactionNotFoundError
    ├── DuplicateReceiptError      — receipt code already used
    ├── DuplicateEmailError / DuplicateUsernameError
    ├── InsufficientFundsError     — purchase queued instead of executed
    ├── AccountSuspendedError
    ├── UnauthorizedAccessError
    ├── ProviderUnavailableError   — payment provider unreachable (retryable)
    ├── ConflictingStateError      — resolving an already-terminal record
    ├── FeatureDisabledError
    └── InvalidCredentialsError

Anything else that escapes a route is logged and returned as a generic 500
without internal detail.
"""

import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class LedgerAPIError(Exception):
    """Base exception for all domain errors."""

    status_code = 400
    error_type = "error"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)

    def to_content(self) -> dict:
        return {"detail": self.detail, "error_type": self.error_type}


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class ValidationError(LedgerAPIError):
    """Raised for input that passes schema validation but breaks a business rule."""

    status_code = 422
    error_type = "validation_error"


class InvalidAmountError(ValidationError):
    """Raised when an amount is below the minimum for its purpose."""

    error_type = "invalid_amount"

    def __init__(self, purpose: str, amount_cents: int, minimum_cents: int):
        self.purpose = purpose
        self.amount_cents = amount_cents
        self.minimum_cents = minimum_cents
        super().__init__(
            f"Minimum {purpose} is {minimum_cents} cents, got {amount_cents} cents"
        )

    def to_content(self) -> dict:
        content = super().to_content()
        content["minimum_cents"] = self.minimum_cents
        return content


class ResourceNotFoundError(LedgerAPIError):
    status_code = 404
    error_type = "not_found"


class AccountNotFoundError(ResourceNotFoundError):
    """Raised when a requested account does not exist."""

    error_type = "account_not_found"

    def __init__(self, account_ref: uuid.UUID | str):
        self.account_ref = account_ref
        super().__init__(f"Account {account_ref} not found")


class TransactionNotFoundError(ResourceNotFoundError):
    error_type = "transaction_not_found"

    def __init__(self, transaction_ref: uuid.UUID | str):
        self.transaction_ref = transaction_ref
        super().__init__(f"Transaction {transaction_ref} not found")


class DuplicateReceiptError(LedgerAPIError):
    """Raised when a receipt code has already been submitted or credited."""

    status_code = 409
    error_type = "duplicate_receipt"

    def __init__(self, receipt_code: str, detail: str | None = None):
        self.receipt_code = receipt_code
        super().__init__(detail or f"Receipt {receipt_code} has already been used")


class DuplicateEmailError(LedgerAPIError):
    status_code = 409
    error_type = "duplicate_email"

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email {email} is already registered")


class DuplicateUsernameError(LedgerAPIError):
    status_code = 409
    error_type = "duplicate_username"

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"Username {username} is already taken")


class InsufficientFundsError(LedgerAPIError):
    """
    Raised when a purchase exceeds the balance.

    The purchase is not lost: it is stored as a QueuedPurchase and settled
    automatically on the account's next successful deposit.

    Attributes:
        requested_cents: The purchase amount.
        available_cents: The balance at the time of the request.
        queued_purchase_id: The queued purchase created for this request.
    """

    status_code = 422
    error_type = "insufficient_funds"

    def __init__(
        self,
        account_id: uuid.UUID,
        requested_cents: int,
        available_cents: int,
        queued_purchase_id: uuid.UUID | None = None,
    ):
        self.account_id = account_id
        self.requested_cents = requested_cents
        self.available_cents = available_cents
        self.queued_purchase_id = queued_purchase_id
        super().__init__(
            f"Insufficient funds: requested {requested_cents} cents, "
            f"available {available_cents} cents"
        )

    @property
    def shortfall_cents(self) -> int:
        return self.requested_cents - self.available_cents

    def to_content(self) -> dict:
        content = super().to_content()
        content.update(
            requested_cents=self.requested_cents,
            available_cents=self.available_cents,
            shortfall_cents=self.shortfall_cents,
            queued_purchase_id=(
                str(self.queued_purchase_id) if self.queued_purchase_id else None
            ),
        )
        return content


class AccountSuspendedError(LedgerAPIError):
    status_code = 403
    error_type = "account_suspended"

    def __init__(self, account_id: uuid.UUID):
        self.account_id = account_id
        super().__init__("This account is suspended")


class UnauthorizedAccessError(LedgerAPIError):
    """Raised when a user attempts to access a resource they don't own."""

    status_code = 403
    error_type = "unauthorized_access"

    def __init__(self, detail: str = "You do not have access to this resource"):
        super().__init__(detail)


class ProviderUnavailableError(LedgerAPIError):
    """
    Raised when a payment provider could not be reached or timed out.

    By the time this is raised the transaction has already been marked failed
    and any reserved funds returned, so the client may simply retry.
    """

    status_code = 503
    error_type = "provider_unavailable"

    def __init__(self, provider: str, transaction_id: uuid.UUID | None = None):
        self.provider = provider
        self.transaction_id = transaction_id
        super().__init__(f"Payment provider {provider} is unavailable, please retry")

    def to_content(self) -> dict:
        content = super().to_content()
        content["retryable"] = True
        if self.transaction_id is not None:
            content["transaction_id"] = str(self.transaction_id)
        return content


class ProviderRejectedError(LedgerAPIError):
    """Raised when a provider answered but declined the request."""

    status_code = 400
    error_type = "provider_rejected"


class ConflictingStateError(LedgerAPIError):
    """Raised when resolving a record that has already reached a terminal state."""

    status_code = 409
    error_type = "conflicting_state"


class FeatureDisabledError(LedgerAPIError):
    error_type = "feature_disabled"


class InvalidCredentialsError(LedgerAPIError):
    status_code = 401
    error_type = "invalid_credentials"

    def __init__(self):
        super().__init__("Invalid email or password")


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    Every LedgerAPIError subclass carries its own status code and error type,
    so one handler covers the whole hierarchy.
    """

    @app.exception_handler(LedgerAPIError)
    async def ledger_error_handler(request: Request, exc: LedgerAPIError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_content())

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "error_type": "server_error"},
        )
