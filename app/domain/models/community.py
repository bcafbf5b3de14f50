"""Community domain model: communities, their members, bans and categories."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.infrastructure.database import Base

VISIBILITIES = ("public", "private", "hidden")
MEMBER_ROLES = ("admin", "member")


class Community(Base):
    __tablename__ = "communities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False)
    slug = Column(String(120), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=False)
    cover_image = Column(String(500), nullable=True)
    visibility = Column(String(20), nullable=False, default="public")
    admin_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    member_count = Column(Integer, nullable=False, default=0)
    rules = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    admin = relationship("User", lazy="joined")
    members = relationship(
        "CommunityMember",
        back_populates="community",
        order_by="CommunityMember.id",
        lazy="selectin",
        cascade="all, delete-orphan",
    )
    bans = relationship("CommunityBan", lazy="selectin", cascade="all, delete-orphan")
    category_links = relationship(
        "CommunityCategory",
        order_by="CommunityCategory.id",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    @property
    def categories(self) -> list[str]:
        return [link.name for link in self.category_links]

    @property
    def banned_user_ids(self) -> list[int]:
        return [ban.user_id for ban in self.bans]

    def is_member(self, user_id: int) -> bool:
        return any(m.user_id == user_id for m in self.members)

    def is_banned(self, user_id: int) -> bool:
        return any(b.user_id == user_id for b in self.bans)

    def role_of(self, user_id: int) -> str | None:
        for member in self.members:
            if member.user_id == user_id:
                return member.role
        return None

    def __repr__(self):
        return f"<Community {self.slug}>"


class CommunityMember(Base):
    __tablename__ = "community_members"
    __table_args__ = (UniqueConstraint("community_id", "user_id", name="uq_community_member"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    community_id = Column(Integer, ForeignKey("communities.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), nullable=False, default="member")  # admin, member
    joined_at = Column(DateTime(timezone=True), server_default=func.now())

    community = relationship("Community", back_populates="members")
    user = relationship("User", lazy="joined")


class CommunityBan(Base):
    __tablename__ = "community_bans"
    __table_args__ = (UniqueConstraint("community_id", "user_id", name="uq_community_ban"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    community_id = Column(Integer, ForeignKey("communities.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    banned_at = Column(DateTime(timezone=True), server_default=func.now())


class CommunityCategory(Base):
    __tablename__ = "community_categories"
    __table_args__ = (UniqueConstraint("community_id", "name", name="uq_community_category"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    community_id = Column(Integer, ForeignKey("communities.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(50), nullable=False, index=True)
