"""Pydantic schemas for Notification."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from app.domain.schemas.auth import CAMEL_CONFIG


class NotificationRead(BaseModel):
    id: int
    user_id: int = Field(serialization_alias="user")
    type: str
    title: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
    is_read: bool
    created_at: Optional[datetime] = None

    model_config = CAMEL_CONFIG
