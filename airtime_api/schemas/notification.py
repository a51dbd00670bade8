"""Pydantic schemas for notifications."""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class NotificationResponse(BaseModel):
    id: uuid.UUID
    account_id: uuid.UUID | None
    title: str
    message: str
    level: str
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationCreateRequest(BaseModel):
    """Request body for POST /admin/notifications. No account_id = broadcast."""
    account_id: uuid.UUID | None = None
    title: str = Field(min_length=1, max_length=120)
    message: str = Field(min_length=1)
    level: Literal["info", "success", "warning", "error"] = "info"
