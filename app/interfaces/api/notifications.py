"""Notifications API routes: the caller's inbox and read state."""

from fastapi import APIRouter, Depends, Query

from app.application.services.notification_service import (
    list_notifications,
    mark_all_notifications_read,
    mark_notification_read,
)
from app.domain.models.user import User
from app.domain.repositories.notification_repository import NotificationRepository
from app.domain.schemas.notification import NotificationRead
from app.interfaces.api.deps import get_current_user
from app.interfaces.deps import get_notification_repository

router = APIRouter(prefix="/api/v1/notifications", tags=["Notifications"])


@router.get("")
def inbox(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    repo: NotificationRepository = Depends(get_notification_repository),
    user: User = Depends(get_current_user),
):
    result = list_notifications(repo, user, page=page, limit=limit)
    return {
        "success": True,
        "notifications": [NotificationRead.model_validate(n) for n in result["items"]],
        "unreadCount": result["unread_count"],
        "pagination": {
            "total": result["total"],
            "page": result["page"],
            "limit": result["limit"],
            "pages": result["pages"],
        },
    }


@router.patch("/read-all")
def read_all(
    repo: NotificationRepository = Depends(get_notification_repository),
    user: User = Depends(get_current_user),
):
    updated = mark_all_notifications_read(repo, user)
    return {"success": True, "updated": updated}


@router.patch("/{notification_id}/read")
def read_one(
    notification_id: int,
    repo: NotificationRepository = Depends(get_notification_repository),
    user: User = Depends(get_current_user),
):
    notification = mark_notification_read(repo, user, notification_id)
    return {"success": True, "notification": NotificationRead.model_validate(notification)}
