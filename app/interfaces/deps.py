"""
API Dependencies.
"""

from typing import Callable

from fastapi import Depends
from sqlalchemy.orm import Session

from app.domain.repositories.community_repository import CommunityRepository
from app.domain.repositories.notification_repository import NotificationRepository
from app.domain.repositories.post_repository import PostRepository
from app.infrastructure.database import SessionLocal, get_db
from app.infrastructure.realtime import ChannelHub, hub
from app.infrastructure.repositories.community_repository import SQLAlchemyCommunityRepository
from app.infrastructure.repositories.notification_repository import SQLAlchemyNotificationRepository
from app.infrastructure.repositories.post_repository import SQLAlchemyPostRepository


def get_community_repository(db: Session = Depends(get_db)) -> CommunityRepository:
    """Get community repository instance."""
    return SQLAlchemyCommunityRepository(db)


def get_post_repository(db: Session = Depends(get_db)) -> PostRepository:
    """Get post repository instance."""
    return SQLAlchemyPostRepository(db)


def get_notification_repository(db: Session = Depends(get_db)) -> NotificationRepository:
    """Get notification repository instance."""
    return SQLAlchemyNotificationRepository(db)


def get_channel_hub() -> ChannelHub:
    return hub


def get_session_factory() -> Callable[[], Session]:
    """Session factory for work that outlives the request session."""
    return SessionLocal
