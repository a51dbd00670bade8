"""
Notifications router — the member's inbox.

    GET  /notifications              — Own + broadcast, newest 50
    PUT  /notifications/{id}/read    — Mark one read
"""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from airtime_api.database import get_db
from airtime_api.dependencies import get_current_account
from airtime_api.models.account import Account
from airtime_api.schemas.notification import NotificationResponse
from airtime_api.services import notification_service

router = APIRouter()


@router.get(
    "",
    response_model=list[NotificationResponse],
    summary="List notifications",
)
async def list_notifications(
    limit: int = Query(50, ge=1, le=100),
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """Own notifications plus broadcasts to everyone, newest first."""
    return await notification_service.list_notifications(db, account.id, limit=limit)


@router.put(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark a notification read",
)
async def mark_notification_read(
    notification_id: uuid.UUID,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """
    Mark one of your notifications as read.

    Broadcasts are shared by every member and are returned unchanged.
    """
    return await notification_service.mark_read(db, notification_id, account.id)
