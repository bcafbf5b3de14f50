"""
Notification Repository Interface.
"""

from typing import Any, Dict, List, Optional

from app.domain.repositories.base import BaseRepository
from app.domain.models.notification import Notification


class NotificationRepository(BaseRepository[Notification]):
    """Interface for inbox operations."""

    def bulk_create(self, rows: List[Dict[str, Any]]) -> int:
        """Insert many notifications at once. Returns how many were written."""
        ...

    def list_for_user(self, user_id: int, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        """A user's notifications, newest first, with pagination info."""
        ...

    def get_for_user(self, notification_id: int, user_id: int) -> Optional[Notification]:
        """Fetch a notification only if it belongs to the user."""
        ...

    def mark_all_read(self, user_id: int) -> int:
        """Mark every unread notification of the user as read."""
        ...

    def unread_count(self, user_id: int) -> int:
        ...
