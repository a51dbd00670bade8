"""
QueuedPurchase model — an airtime purchase deferred for lack of funds.

When a member asks for more airtime than their balance covers, the request
is stored here instead of being dropped. The next successful deposit on the
account attempts the OLDEST pending entry (one per deposit); if the new
balance covers it, the airtime is sent and the entry becomes "completed".
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from airtime_api.database import Base


class QueuedPurchase(Base):
    __tablename__ = "queued_purchases"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id"),
        nullable=False,
        index=True,
    )

    target_phone: Mapped[str] = mapped_column(String(20), nullable=False)

    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)

    # "pending" or "completed"
    status: Mapped[str] = mapped_column(String(10), nullable=False, default="pending")

    # The airtime_purchase transaction that settled this entry
    transaction_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("transactions.id"),
        nullable=True,
    )

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
