"""Notification service: in-app inbox writes and reads.

Features:
- OTP delivery and welcome messages for the auth flows
- Fan-out of one notification per community member when a post is created
- Inbox listing and read-state changes
"""

from typing import Any, Callable, Dict, Optional

import structlog
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.exceptions import EntityNotFoundException
from app.domain.models.community import Community
from app.domain.models.notification import Notification
from app.domain.models.user import User
from app.domain.repositories.notification_repository import NotificationRepository
from app.infrastructure.repositories.community_repository import SQLAlchemyCommunityRepository
from app.infrastructure.repositories.notification_repository import SQLAlchemyNotificationRepository

settings = get_settings()
logger = structlog.get_logger(__name__)

PREVIEW_LENGTH = 50

OTP_TITLES = {
    "email_verification": "🔐 Email Verification OTP",
    "email_verification_resend": "🔐 New OTP Request",
    "password_reset": "🔐 Password Reset Code",
}


def notify(
    db: Session,
    user_id: int,
    type: str,
    title: str,
    message: str,
    data: Optional[Dict[str, Any]] = None,
    commit: bool = True,
) -> Notification:
    notification = Notification(user_id=user_id, type=type, title=title, message=message, data=data or {})
    db.add(notification)
    if commit:
        db.commit()
        db.refresh(notification)
    return notification


def send_otp_notification(db: Session, user: User, code: str, purpose: str, resend: bool = False) -> Notification:
    """Deliver a one-time code through the user's inbox."""
    title_key = f"{purpose}_resend" if resend else purpose
    if purpose == "password_reset":
        message = f"Your one-time code for password reset is: {code}. This code will expire in {settings.OTP_EXPIRATION_MINUTES} minutes."
    else:
        prefix = "Your new OTP" if resend else "Your OTP"
        message = f"{prefix} for email verification is: {code}. This code will expire in {settings.OTP_EXPIRATION_MINUTES} minutes."

    notification = notify(
        db,
        user.id,
        "otp",
        OTP_TITLES[title_key],
        message,
        {"otp": code, "purpose": purpose},
    )
    logger.info("OTP notification created", user_id=user.id, purpose=purpose)
    return notification


def send_welcome_notification(db: Session, user: User) -> Notification:
    return notify(
        db,
        user.id,
        "welcome",
        "🎉 Welcome to Huddle!",
        f"Hi {user.username}! Your email has been successfully verified. "
        "Start exploring and connecting with the community!",
        {"verified": True},
    )


def fan_out_post_notifications(
    session_factory: Callable[[], Session],
    post_id: int,
    community_id: int,
    author_id: int,
    author_username: str,
    content: str,
) -> int:
    """Write one 'post' notification per member except the author.

    Runs after the post is committed, in its own session.
    """
    db = session_factory()
    try:
        community = db.get(Community, community_id)
        if community is None:
            logger.warning("Fan-out skipped, community missing", community_id=community_id, post_id=post_id)
            return 0

        recipients = SQLAlchemyCommunityRepository(db).member_ids(community_id, exclude=author_id)
        preview = content[:PREVIEW_LENGTH]
        rows = [
            {
                "user_id": member_id,
                "type": "post",
                "title": f"New Post in {community.name}",
                "message": f"{author_username} posted: {preview}...",
                "data": {"communityId": community_id, "postId": post_id},
                "is_read": False,
            }
            for member_id in recipients
        ]
        written = SQLAlchemyNotificationRepository(db).bulk_create(rows)
        logger.info("Post notifications sent", post_id=post_id, community_id=community_id, count=written)
        return written
    finally:
        db.close()


def list_notifications(repo: NotificationRepository, user: User, page: int = 1, limit: int = 20) -> Dict[str, Any]:
    return repo.list_for_user(user.id, page=page, limit=limit)


def mark_notification_read(repo: NotificationRepository, user: User, notification_id: int) -> Notification:
    notification = repo.get_for_user(notification_id, user.id)
    if notification is None:
        raise EntityNotFoundException("Notification not found.")
    if notification.is_read:
        return notification
    return repo.update(notification, {"is_read": True})


def mark_all_notifications_read(repo: NotificationRepository, user: User) -> int:
    return repo.mark_all_read(user.id)
