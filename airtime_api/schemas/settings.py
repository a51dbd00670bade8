"""Pydantic schemas for the admin settings console."""

from datetime import datetime

from pydantic import BaseModel, Field


class SettingResponse(BaseModel):
    key: str
    value: str
    updated_at: datetime | None

    model_config = {"from_attributes": True}


class SettingUpdateRequest(BaseModel):
    value: str = Field(min_length=1, max_length=100)
