"""
Account model — a customer's wallet.

Each account has:
  - A unique username (the public display handle)
  - A contact phone number in 254XXXXXXXXX form
  - A balance in integer cents
  - A status: "active" or "suspended" (accounts are never deleted)

Balance management:
  `balance_cents` is written ONLY by the ledger service, always through a
  single-row `UPDATE ... SET balance_cents = balance_cents ± x` issued in the
  same database transaction as the matching transaction status change.

  A CHECK constraint enforces that the balance can never go negative. The
  ledger also guards debits with `WHERE balance_cents >= x`; the constraint
  is the final safety net.

Why integer cents?
  KES 10.50 is stored as 1050. All arithmetic is exact, and a discount like
  "10% off" is computed on integers with an explicit rounding rule instead
  of accumulating float error.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from airtime_api.database import Base


class Account(Base):
    __tablename__ = "accounts"

    __table_args__ = (
        CheckConstraint(
            "balance_cents >= 0",
            name="ck_accounts_non_negative_balance",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # Login identity; UNIQUE enforces the one-to-one relationship
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        unique=True,
        nullable=False,
    )

    username: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
    )

    # Denormalized from User so admin listings don't need a JOIN
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    phone: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    balance_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    # "active" or "suspended"
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="active",
    )

    # UI preferences
    language: Mapped[str] = mapped_column(String(10), nullable=False, default="en")
    theme: Mapped[str] = mapped_column(String(20), nullable=False, default="light")

    last_login_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # --- Relationships ---
    user: Mapped["User"] = relationship(
        back_populates="account",
    )
