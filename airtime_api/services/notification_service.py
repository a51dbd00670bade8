"""
Notification service — in-app messages for members.

Ledger operations call notify() inside their own database transaction, so a
"Deposit Successful" message is committed together with the credit it
describes, or not at all.
"""

import uuid

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from airtime_api.exceptions import ResourceNotFoundError, UnauthorizedAccessError
from airtime_api.models.notification import Notification


async def notify(
    db: AsyncSession,
    account_id: uuid.UUID | None,
    title: str,
    message: str,
    level: str = "info",
) -> Notification:
    """
    Record a notification. account_id=None broadcasts to everyone.

    Only flushes; the caller owns the commit.
    """
    notification = Notification(
        account_id=account_id,
        title=title,
        message=message,
        level=level,
    )
    db.add(notification)
    await db.flush()
    return notification


async def list_notifications(
    db: AsyncSession,
    account_id: uuid.UUID,
    limit: int = 50,
) -> list[Notification]:
    """The account's own notifications plus broadcasts, newest first."""
    result = await db.execute(
        select(Notification)
        .where(or_(Notification.account_id == account_id, Notification.account_id.is_(None)))
        .order_by(Notification.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def mark_read(
    db: AsyncSession,
    notification_id: uuid.UUID,
    account_id: uuid.UUID,
) -> Notification:
    """
    Mark one of the account's notifications as read.

    Broadcasts have a single shared row, so they carry no per-member read
    state; they are returned unchanged.

    Raises:
        ResourceNotFoundError: If the notification doesn't exist.
        UnauthorizedAccessError: If it is addressed to another account.
    """
    notification = await db.get(Notification, notification_id)
    if notification is None:
        raise ResourceNotFoundError(f"Notification {notification_id} not found")

    if notification.account_id is None:
        return notification

    if notification.account_id != account_id:
        raise UnauthorizedAccessError("You do not have access to this notification")

    notification.is_read = True
    await db.flush()
    return notification
