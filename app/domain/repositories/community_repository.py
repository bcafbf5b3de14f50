"""
Community Repository Interface.
Defines membership-aware data access for Communities.
"""

from typing import List, Optional

from app.domain.repositories.base import BaseRepository
from app.domain.models.community import Community


class CommunityRepository(BaseRepository[Community]):
    """Interface for Community-specific operations."""

    def get_by_slug(self, slug: str) -> Optional[Community]:
        """Get a community by its slug."""
        ...

    def exists_with_name_or_slug(self, name: str, slug: str) -> bool:
        """Whether the name or slug is already taken."""
        ...

    def create_with_owner(
        self,
        name: str,
        slug: str,
        description: str,
        categories: List[str],
        owner_id: int,
        cover_image: Optional[str] = None,
        visibility: str = "public",
        rules: Optional[List[str]] = None,
    ) -> Community:
        """Persist a community whose owner is its first admin member."""
        ...

    def add_member(self, community_id: int, user_id: int, role: str = "member") -> None:
        """Insert a member row, bump member_count and sync the user cache in one transaction."""
        ...

    def remove_member(self, community_id: int, user_id: int) -> bool:
        """Delete a member row, decrement member_count and sync the user cache. False if absent."""
        ...

    def ban_user(self, community_id: int, user_id: int) -> None:
        """Remove any membership and record the ban in one transaction."""
        ...

    def unban_user(self, community_id: int, user_id: int) -> bool:
        """Drop a ban. False if the user was not banned."""
        ...

    def list_for_member(self, user_id: int) -> List[Community]:
        """Active, non-hidden communities the user belongs to."""
        ...

    def list_newest_public(self, limit: int = 10) -> List[Community]:
        """Active public communities, newest first."""
        ...

    def list_recommended(self, user_id: int, interests: List[str], limit: int = 10) -> List[Community]:
        """Active public communities matching an interest that the user has not joined."""
        ...

    def member_ids(self, community_id: int, exclude: Optional[int] = None) -> List[int]:
        """User ids of all members, optionally without one of them."""
        ...
