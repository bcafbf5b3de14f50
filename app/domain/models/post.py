"""Post domain model: community posts and their upvote ledger."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.infrastructure.database import Base

POST_TYPES = ("text", "image", "video")


class Post(Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    community_id = Column(Integer, ForeignKey("communities.id"), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(300), nullable=False)
    content = Column(Text, nullable=False)
    type = Column(String(10), nullable=False, default="text")  # text, image, video
    images = Column(JSON, nullable=False, default=list)
    video_url = Column(String(500), nullable=True)
    upvote_count = Column(Integer, nullable=False, default=0)
    is_deleted = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    author = relationship("User", lazy="joined")
    upvotes = relationship("PostUpvote", lazy="selectin", order_by="PostUpvote.id", cascade="all, delete-orphan")

    @property
    def upvoter_ids(self) -> list[int]:
        return [vote.user_id for vote in self.upvotes]

    def __repr__(self):
        return f"<Post {self.id} in {self.community_id}>"


class PostUpvote(Base):
    __tablename__ = "post_upvotes"
    __table_args__ = (UniqueConstraint("post_id", "user_id", name="uq_post_upvote"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
