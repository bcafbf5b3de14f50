"""Pydantic schemas for Post."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.domain.schemas.auth import CAMEL_CONFIG, UserSummary


class PostRead(BaseModel):
    id: int
    community_id: int = Field(serialization_alias="community")
    author: Optional[UserSummary] = None
    title: str
    content: str
    type: str
    images: list[str] = Field(default_factory=list)
    video_url: Optional[str] = None
    upvoter_ids: list[int] = Field(default_factory=list, serialization_alias="upvotes")
    upvote_count: int
    is_deleted: bool
    created_at: Optional[datetime] = None

    model_config = CAMEL_CONFIG


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int
