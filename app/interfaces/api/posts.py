"""Posts API routes: create, community feed, voting, deletion."""

from typing import Callable, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session

from app.application.services import post_service
from app.application.services.side_effects import AfterCommit
from app.domain.models.user import User
from app.domain.repositories.community_repository import CommunityRepository
from app.domain.repositories.post_repository import PostRepository
from app.domain.schemas.post import Pagination, PostRead
from app.infrastructure.realtime import ChannelHub
from app.interfaces.api.deps import get_current_user, get_optional_user, read_upload
from app.interfaces.deps import (
    get_channel_hub,
    get_community_repository,
    get_post_repository,
    get_session_factory,
)

router = APIRouter(prefix="/api/v1/posts", tags=["Posts"])


def _schedule(effects: AfterCommit, background_tasks: BackgroundTasks) -> None:
    if len(effects):
        background_tasks.add_task(effects.run)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_post(
    background_tasks: BackgroundTasks,
    content: Optional[str] = Form(None),
    community_id: Optional[str] = Form(None, alias="communityId"),
    title: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    posts: PostRepository = Depends(get_post_repository),
    communities: CommunityRepository = Depends(get_community_repository),
    hub: ChannelHub = Depends(get_channel_hub),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
    user: User = Depends(get_current_user),
):
    effects = AfterCommit()
    post = post_service.create_post(
        posts,
        communities,
        author=user,
        content=content,
        community_id=community_id,
        hub=hub,
        session_factory=session_factory,
        effects=effects,
        title=title,
        attachment=read_upload(file),
    )
    _schedule(effects, background_tasks)
    return {"success": True, "post": PostRead.model_validate(post)}


@router.get("/community/{community_id}")
def community_posts(
    community_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(post_service.DEFAULT_PAGE_SIZE, ge=1, le=post_service.MAX_PAGE_SIZE),
    posts: PostRepository = Depends(get_post_repository),
    communities: CommunityRepository = Depends(get_community_repository),
    user: Optional[User] = Depends(get_optional_user),
):
    result = post_service.get_community_discussions(posts, communities, community_id, user, page=page, limit=limit)
    return {
        "success": True,
        "posts": [PostRead.model_validate(p) for p in result["items"]],
        "pagination": Pagination(
            total=result["total"], page=result["page"], limit=result["limit"], pages=result["pages"]
        ),
    }


@router.put("/{post_id}/vote")
def vote_post(
    post_id: int,
    background_tasks: BackgroundTasks,
    posts: PostRepository = Depends(get_post_repository),
    hub: ChannelHub = Depends(get_channel_hub),
    user: User = Depends(get_current_user),
):
    effects = AfterCommit()
    post = post_service.toggle_post_vote(posts, post_id, user, hub, effects)
    _schedule(effects, background_tasks)
    return {"success": True, "post": PostRead.model_validate(post)}


@router.delete("/{post_id}")
def delete_post(
    post_id: int,
    background_tasks: BackgroundTasks,
    posts: PostRepository = Depends(get_post_repository),
    communities: CommunityRepository = Depends(get_community_repository),
    hub: ChannelHub = Depends(get_channel_hub),
    user: User = Depends(get_current_user),
):
    effects = AfterCommit()
    post = post_service.delete_post(posts, communities, post_id, user, hub, effects)
    _schedule(effects, background_tasks)
    return {"success": True, "message": "Post deleted", "postId": post.id}
