"""
SQLAlchemy Implementation of Post Repository.
"""

from typing import Any, Dict

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.domain.models.post import Post, PostUpvote
from app.domain.repositories.post_repository import PostRepository
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository


class SQLAlchemyPostRepository(SQLAlchemyRepository[Post], PostRepository):
    """Post repository implementation using SQLAlchemy."""

    def __init__(self, db: Session, model=Post):
        super().__init__(db, model)

    def toggle_upvote(self, post_id: int, user_id: int) -> bool:
        """Delete the ledger row if present, insert it otherwise.

        The unique (post_id, user_id) constraint settles two concurrent first
        votes: the loser's insert fails and the vote the winner recorded stands.
        """
        try:
            removed = self.db.execute(
                delete(PostUpvote).where(PostUpvote.post_id == post_id, PostUpvote.user_id == user_id)
            ).rowcount
            if removed:
                delta = -1
            else:
                self.db.add(PostUpvote(post_id=post_id, user_id=user_id))
                self.db.flush()
                delta = 1
            self.db.query(Post).filter(Post.id == post_id).update(
                {Post.upvote_count: Post.upvote_count + delta},
                synchronize_session=False,
            )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return True
        return delta > 0

    def soft_delete(self, post: Post) -> Post:
        post.is_deleted = True
        self.db.commit()
        self.db.refresh(post)
        return post

    def list_for_community(self, community_id: int, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        query = self.db.query(Post).filter(Post.community_id == community_id, Post.is_deleted.is_(False))

        total = query.count()
        posts = (
            query.order_by(Post.created_at.desc(), Post.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

        return {
            "items": posts,
            "total": total,
            "page": page,
            "limit": limit,
            "pages": (total + limit - 1) // limit,
        }
