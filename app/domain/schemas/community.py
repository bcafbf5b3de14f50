"""Pydantic schemas for Community."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.domain.schemas.auth import CAMEL_CONFIG, UserSummary


class CommunityMemberRead(BaseModel):
    user_id: int = Field(serialization_alias="user")
    role: str
    joined_at: Optional[datetime] = None

    model_config = CAMEL_CONFIG


class CommunitySummary(BaseModel):
    """Listing shape: no members, bans or rules."""
    id: int
    name: str
    slug: str
    description: str
    categories: list[str] = Field(default_factory=list)
    cover_image: Optional[str] = None
    visibility: str
    admin: Optional[UserSummary] = None
    member_count: int
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = CAMEL_CONFIG


class UserCommunityRead(CommunitySummary):
    """A community the caller belongs to, with its member list."""
    members: list[CommunityMemberRead] = Field(default_factory=list)


class CommunityRead(UserCommunityRead):
    """Full detail; the ban list is never exposed."""
    rules: list[str] = Field(default_factory=list)


class CommunityModerationRead(CommunityRead):
    banned_user_ids: list[int] = Field(default_factory=list, serialization_alias="bannedUsers")


class CommunityRef(BaseModel):
    id: int
    name: str
    slug: str

    model_config = CAMEL_CONFIG


class MembershipRead(BaseModel):
    id: int
    slug: str
    member_count: int

    model_config = CAMEL_CONFIG
