"""
Transaction model — records every monetary event on the platform.

Kinds:
  - deposit           — M-Pesa STK push or manually verified receipt (credit)
  - airtime_purchase  — airtime paid from the wallet balance (debit)
  - direct_purchase   — anonymous STK push that buys airtime straight away;
                        never touches a wallet (account_id is NULL)
  - adjustment        — admin correction, either direction
  - conversion        — airtime-to-cash payout, settled off-wallet

Status lifecycle:
    pending ──> success
       └──────> failed

  Both outcomes are terminal. The ledger moves a row out of "pending" with a
  conditional UPDATE (`WHERE status = 'pending'`), so when a provider retries
  a callback only the first delivery wins and the rest are no-ops.

References:
  - reference:      ours, generated before the provider is contacted
                    (e.g. "DEP-3f2a..."), UNIQUE per provider
  - correlation_id: the provider's own id for the request (checkout request
                    id for PayNecta, request_id for Statum)
  - receipt_code:   the M-Pesa confirmation code, once known

Callbacks are matched on reference or correlation_id by exact equality only.

Amounts are always positive; `direction` says which way the money moved.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from airtime_api.database import Base


class Transaction(Base):
    __tablename__ = "transactions"

    __table_args__ = (
        # Manual verifications start at 0 and get their amount on approval
        CheckConstraint("amount_cents >= 0", name="ck_transactions_non_negative_amount"),
        UniqueConstraint("provider", "reference", name="uq_transactions_provider_reference"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # NULL for anonymous direct purchases
    account_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("accounts.id"),
        nullable=True,
        index=True,
    )

    kind: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    # "credit" (money in) or "debit" (money out)
    direction: Mapped[str] = mapped_column(String(10), nullable=False)

    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    bonus_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Platform margin on airtime (requested - delivered)
    fee_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # "paynecta", "statum" or "manual"
    provider: Mapped[str] = mapped_column(String(20), nullable=False)

    reference: Mapped[str] = mapped_column(String(64), nullable=False)

    correlation_id: Mapped[str | None] = mapped_column(
        String(128),
        nullable=True,
        index=True,
    )

    receipt_code: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
        index=True,
    )

    # Paying phone (deposits) and receiving phone (airtime)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    target_phone: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # "pending", "success" or "failed"
    status: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default="pending",
        index=True,
    )

    description: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Raw provider responses and callbacks, kept for support and audit
    result_payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
