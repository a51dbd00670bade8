"""
ConversionRequest model — airtime-to-cash.

Flow:
  1. Member requests a conversion; we quote cash = airtime * rate / 100 and
     give them the USSD string to send airtime to the platform's line.
  2. Member submits the transfer confirmation code ("verified").
  3. Admin confirms receipt and pays the cash out by M-Pesa ("completed"),
     which records a `conversion` transaction.

The cash never passes through the wallet balance.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Integer, DateTime, ForeignKey, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from airtime_api.database import Base


class ConversionRequest(Base):
    __tablename__ = "conversion_requests"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id"),
        nullable=False,
        index=True,
    )

    phone: Mapped[str] = mapped_column(String(20), nullable=False)

    airtime_amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    cash_amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)

    # Percentage in effect when the quote was given
    rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)

    transfer_code: Mapped[str | None] = mapped_column(String(32), nullable=True)

    # "pending", "verified" or "completed"
    status: Mapped[str] = mapped_column(String(10), nullable=False, default="pending")

    transaction_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("transactions.id"),
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
