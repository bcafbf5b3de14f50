"""
SQLAlchemy Implementation of Notification Repository.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import func, insert
from sqlalchemy.orm import Session

from app.domain.models.notification import Notification
from app.domain.repositories.notification_repository import NotificationRepository
from app.infrastructure.database import is_valid_id
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository


class SQLAlchemyNotificationRepository(SQLAlchemyRepository[Notification], NotificationRepository):
    """Notification repository implementation using SQLAlchemy."""

    def __init__(self, db: Session, model=Notification):
        super().__init__(db, model)

    def bulk_create(self, rows: List[Dict[str, Any]]) -> int:
        if not rows:
            return 0
        self.db.execute(insert(Notification), rows)
        self.db.commit()
        return len(rows)

    def list_for_user(self, user_id: int, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        query = self.db.query(Notification).filter(Notification.user_id == user_id)

        total = query.count()
        items = (
            query.order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

        return {
            "items": items,
            "total": total,
            "unread_count": self.unread_count(user_id),
            "page": page,
            "limit": limit,
            "pages": (total + limit - 1) // limit,
        }

    def get_for_user(self, notification_id: int, user_id: int) -> Optional[Notification]:
        if not is_valid_id(notification_id):
            return None
        return (
            self.db.query(Notification)
            .filter(Notification.id == notification_id, Notification.user_id == user_id)
            .first()
        )

    def mark_all_read(self, user_id: int) -> int:
        updated = (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .update({Notification.is_read: True}, synchronize_session=False)
        )
        self.db.commit()
        return updated

    def unread_count(self, user_id: int) -> int:
        return (
            self.db.query(func.count(Notification.id))
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .scalar()
        ) or 0
