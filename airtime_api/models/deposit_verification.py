"""
DepositVerification model — a member's claim that they paid by M-Pesa.

Used when an STK push callback never arrived. The member submits the
M-Pesa receipt code; an admin checks it against the M-Pesa statement and
approves (with the amount actually received) or rejects it.

receipt_code is UNIQUE, so the same code can never be submitted twice.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from airtime_api.database import Base


class DepositVerification(Base):
    __tablename__ = "deposit_verifications"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id"),
        nullable=False,
        index=True,
    )

    # The pending manual deposit created alongside this request
    transaction_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("transactions.id"),
        nullable=False,
    )

    # Stored upper-cased
    receipt_code: Mapped[str] = mapped_column(
        String(32),
        unique=True,
        nullable=False,
    )

    phone: Mapped[str] = mapped_column(String(20), nullable=False)

    # Filled in by the admin on approval
    amount_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # "pending", "verified" or "failed"
    status: Mapped[str] = mapped_column(String(10), nullable=False, default="pending")

    verified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
