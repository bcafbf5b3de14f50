"""
Post Repository Interface.
Defines data access for Posts and the upvote ledger.
"""

from typing import Any, Dict

from app.domain.repositories.base import BaseRepository
from app.domain.models.post import Post


class PostRepository(BaseRepository[Post]):
    """Interface for Post-specific operations."""

    def toggle_upvote(self, post_id: int, user_id: int) -> bool:
        """Flip the user's vote on the post. Returns True if the user now has a vote."""
        ...

    def soft_delete(self, post: Post) -> Post:
        """Flag the post as deleted."""
        ...

    def list_for_community(self, community_id: int, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        """Non-deleted posts of a community, newest first, with pagination info."""
        ...
