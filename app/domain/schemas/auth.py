"""Pydantic schemas for User and Auth."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Wire format is camelCase; Python code keeps snake_case names
CAMEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class UserSummary(BaseModel):
    id: int
    username: str
    profile_image: Optional[str] = None

    model_config = CAMEL_CONFIG


class UserRead(BaseModel):
    id: int
    username: str
    email: str
    bio: str
    profile_image: Optional[str] = None
    interests: list[str] = Field(default_factory=list)
    is_email_verified: bool
    role: str
    is_active: bool
    last_login: Optional[datetime] = None
    joined_community_ids: list[int] = Field(default_factory=list, serialization_alias="joinedCommunities")
    created_at: Optional[datetime] = None

    model_config = CAMEL_CONFIG


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class EmailRequest(BaseModel):
    email: str = ""


class VerifyEmailRequest(BaseModel):
    email: str = ""
    otp: str = ""


class ResetPasswordRequest(BaseModel):
    email: str = ""
    otp: str = ""
    new_password: str = ""

    model_config = CAMEL_CONFIG
