"""Communities API routes: create, discover, join/leave, moderation."""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session

from app.application.services import community_service
from app.application.services.post_service import get_community_discussions
from app.domain.models.user import User
from app.domain.repositories.community_repository import CommunityRepository
from app.domain.repositories.post_repository import PostRepository
from app.domain.schemas.community import (
    CommunityModerationRead,
    CommunityRead,
    CommunityRef,
    CommunitySummary,
    MembershipRead,
    UserCommunityRead,
)
from app.domain.schemas.post import PostRead
from app.infrastructure.database import get_db
from app.interfaces.api.deps import get_current_user, get_optional_user, get_user_or_404, read_upload
from app.interfaces.deps import get_community_repository, get_post_repository

router = APIRouter(prefix="/api/v1/communities", tags=["Communities"])


def _single_or_list(values: Optional[List[str]]):
    # One form field may carry a JSON array or a comma-separated list
    if values and len(values) == 1:
        return values[0]
    return values


@router.get("/my-communities")
def my_communities(
    repo: CommunityRepository = Depends(get_community_repository),
    user: User = Depends(get_current_user),
):
    communities = community_service.get_user_communities(repo, user)
    response = {
        "success": True,
        "count": len(communities),
        "data": [UserCommunityRead.model_validate(c) for c in communities],
    }
    if not communities:
        response["message"] = "You have not joined any communities yet."
    return response


@router.get("/popular")
def popular_communities(
    limit: int = Query(10, ge=1, le=50),
    repo: CommunityRepository = Depends(get_community_repository),
):
    communities = community_service.get_popular_communities(repo, limit)
    return {
        "success": True,
        "count": len(communities),
        "data": [CommunitySummary.model_validate(c) for c in communities],
    }


@router.get("/recommended")
def recommended_communities(
    repo: CommunityRepository = Depends(get_community_repository),
    user: User = Depends(get_current_user),
):
    communities = community_service.get_recommended_communities(repo, user)
    response = {
        "success": True,
        "count": len(communities),
        "data": [CommunitySummary.model_validate(c) for c in communities],
    }
    if not user.interests:
        response["message"] = "Add interests to your profile to get community recommendations."
    return response


@router.post("/create", status_code=status.HTTP_201_CREATED)
def create_community(
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    categories: Optional[List[str]] = Form(None),
    visibility: str = Form("public"),
    rules: Optional[List[str]] = Form(None),
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    repo: CommunityRepository = Depends(get_community_repository),
    user: User = Depends(get_current_user),
):
    community = community_service.create_community(
        repo,
        creator=user,
        name=name,
        description=description,
        categories=_single_or_list(categories),
        cover_image=read_upload(cover_image),
        visibility=visibility,
        rules=rules,
    )
    return {
        "success": True,
        "message": "Community created successfully",
        "data": CommunityRead.model_validate(community),
    }


@router.get("/{id_or_slug}")
def get_community(
    id_or_slug: str,
    repo: CommunityRepository = Depends(get_community_repository),
    user: Optional[User] = Depends(get_optional_user),
):
    community = community_service.get_community_information(repo, id_or_slug, user)
    return {"success": True, "data": CommunityRead.model_validate(community)}


@router.get("/{id_or_slug}/discussions")
def community_discussions(
    id_or_slug: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    posts: PostRepository = Depends(get_post_repository),
    repo: CommunityRepository = Depends(get_community_repository),
    user: Optional[User] = Depends(get_optional_user),
):
    result = get_community_discussions(posts, repo, id_or_slug, user, page=page, limit=limit)
    return {
        "success": True,
        "community": CommunityRef.model_validate(result["community"]),
        "data": [PostRead.model_validate(p) for p in result["items"]],
        "pagination": {
            "total": result["total"],
            "page": result["page"],
            "limit": result["limit"],
            "pages": result["pages"],
        },
    }


@router.post("/{id_or_slug}/join")
def join_community(
    id_or_slug: str,
    repo: CommunityRepository = Depends(get_community_repository),
    user: User = Depends(get_current_user),
):
    community = community_service.join_community(repo, id_or_slug, user)
    return {
        "success": True,
        "message": f"Successfully joined community: {community.name}",
        "data": MembershipRead.model_validate(community),
    }


@router.post("/{id_or_slug}/leave")
def leave_community(
    id_or_slug: str,
    repo: CommunityRepository = Depends(get_community_repository),
    user: User = Depends(get_current_user),
):
    community = community_service.leave_community(repo, id_or_slug, user)
    return {
        "success": True,
        "message": f"You have left community: {community.name}",
        "data": MembershipRead.model_validate(community),
    }


@router.post("/{id_or_slug}/bans/{user_id}")
def ban_member(
    id_or_slug: str,
    user_id: int,
    db: Session = Depends(get_db),
    repo: CommunityRepository = Depends(get_community_repository),
    user: User = Depends(get_current_user),
):
    target = get_user_or_404(db, user_id)
    community = community_service.ban_user(repo, id_or_slug, target.id, user)
    return {
        "success": True,
        "message": f"{target.username} has been banned from {community.name}",
        "data": CommunityModerationRead.model_validate(community),
    }


@router.delete("/{id_or_slug}/bans/{user_id}")
def unban_member(
    id_or_slug: str,
    user_id: int,
    db: Session = Depends(get_db),
    repo: CommunityRepository = Depends(get_community_repository),
    user: User = Depends(get_current_user),
):
    target = get_user_or_404(db, user_id)
    community = community_service.unban_user(repo, id_or_slug, target.id, user)
    return {
        "success": True,
        "message": f"{target.username} has been unbanned from {community.name}",
        "data": CommunityModerationRead.model_validate(community),
    }
