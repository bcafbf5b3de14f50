"""User domain model: maps to the 'users' table."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Table, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.infrastructure.database import Base

# Denormalised cache of memberships; community_members stays the source of truth
user_joined_communities = Table(
    "user_joined_communities",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("community_id", Integer, ForeignKey("communities.id", ondelete="CASCADE"), nullable=False),
    UniqueConstraint("user_id", "community_id", name="uq_user_joined_community"),
)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    bio = Column(String(250), nullable=False, default="")
    profile_image = Column(String(500), nullable=True)
    interests = Column(JSON, nullable=False, default=list)
    role = Column(String(20), nullable=False, default="user")  # user, admin
    is_email_verified = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    last_login = Column(DateTime(timezone=True), nullable=True)

    # One live code per purpose; only the SHA-256 of the code is kept
    email_otp_hash = Column(String(64), nullable=True)
    email_otp_expires_at = Column(DateTime(timezone=True), nullable=True)
    reset_otp_hash = Column(String(64), nullable=True)
    reset_otp_expires_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    joined_communities = relationship(
        "Community",
        secondary=user_joined_communities,
        lazy="selectin",
        viewonly=True,
        order_by="Community.id",
    )

    @property
    def joined_community_ids(self) -> list[int]:
        return [c.id for c in self.joined_communities]

    def __repr__(self):
        return f"<User {self.username}>"
