"""Post service: creation, voting, listing and soft deletion.

Writes commit first; broadcasts and notification fan-out are queued on the
caller's ``AfterCommit`` and never undo the post.
"""

from typing import Any, Callable, Dict, Optional

import structlog
from sqlalchemy.orm import Session

from app.core.exceptions import EntityNotFoundException, ForbiddenException, ValidationException
from app.domain.models.post import Post
from app.domain.models.user import User
from app.domain.repositories.community_repository import CommunityRepository
from app.domain.repositories.post_repository import PostRepository
from app.domain.schemas.post import PostRead
from app.infrastructure.file_storage import (
    IMAGE_EXTENSIONS,
    VIDEO_EXTENSIONS,
    UploadPayload,
    discard_upload,
    save_upload,
)
from app.infrastructure.realtime import ChannelHub, community_channel
from app.application.services.community_service import ensure_can_view, resolve_community
from app.application.services.notification_service import fan_out_post_notifications
from app.application.services.side_effects import AfterCommit

logger = structlog.get_logger(__name__)

TITLE_LENGTH = 50
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def classify_attachment(extension: str) -> str:
    """Post type for an attachment; unknown extensions are treated as images."""
    extension = extension.lower()
    if extension in IMAGE_EXTENSIONS:
        return "image"
    if extension in VIDEO_EXTENSIONS:
        return "video"
    return "image"


def _post_payload(post: Post) -> Dict[str, Any]:
    return PostRead.model_validate(post).model_dump(mode="json", by_alias=True)


def create_post(
    posts: PostRepository,
    communities: CommunityRepository,
    author: User,
    content: str,
    community_id: Any,
    hub: ChannelHub,
    session_factory: Callable[[], Session],
    effects: AfterCommit,
    title: Optional[str] = None,
    attachment: Optional[UploadPayload] = None,
) -> Post:
    content = (content or "").strip()
    if not content or not community_id:
        raise ValidationException("Content and community ID are required.")

    community = resolve_community(communities, str(community_id))
    if community.is_banned(author.id) or not community.is_member(author.id):
        raise ForbiddenException("Only members can post in this community.")

    data: Dict[str, Any] = {
        "community_id": community.id,
        "author_id": author.id,
        "content": content,
        "title": (title or "").strip() or content[:TITLE_LENGTH],
        "type": "text",
        "images": [],
    }

    stored = None
    if attachment is not None:
        stored = save_upload(attachment, prefix="file", allow_video=True)
        data["type"] = classify_attachment(stored.extension)
        if data["type"] == "video":
            data["video_url"] = stored.public_url
        else:
            data["images"] = [stored.public_url]

    try:
        post = posts.create(data)
    except Exception:
        discard_upload(stored)
        raise

    logger.info("Post created", post_id=post.id, community_id=community.id, author_id=author.id, type=post.type)

    effects.add("broadcast:newPost", hub.broadcast, community_channel(community.id), "newPost", _post_payload(post))
    effects.add(
        "notify:members",
        fan_out_post_notifications,
        session_factory,
        post.id,
        community.id,
        author.id,
        author.username,
        content,
    )
    return post


def _get_live_post(posts: PostRepository, post_id: int) -> Post:
    post = posts.get_by_id(post_id)
    if post is None or post.is_deleted:
        raise EntityNotFoundException("Post not found.", {"postId": post_id})
    return post


def toggle_post_vote(
    posts: PostRepository,
    post_id: int,
    user: User,
    hub: ChannelHub,
    effects: AfterCommit,
) -> Post:
    post = _get_live_post(posts, post_id)

    voted = posts.toggle_upvote(post.id, user.id)
    post = posts.refresh(post)

    logger.info("Vote toggled", post_id=post.id, user_id=user.id, voted=voted, upvotes=post.upvote_count)
    effects.add("broadcast:postUpdated", hub.broadcast, community_channel(post.community_id), "postUpdated", _post_payload(post))
    return post


def delete_post(
    posts: PostRepository,
    communities: CommunityRepository,
    post_id: int,
    user: User,
    hub: ChannelHub,
    effects: AfterCommit,
) -> Post:
    post = _get_live_post(posts, post_id)
    community = communities.get_by_id(post.community_id)
    is_community_admin = community is not None and community.role_of(user.id) == "admin"
    if post.author_id != user.id and not is_community_admin:
        raise ForbiddenException("Only the author or a community admin can delete this post.")

    post = posts.soft_delete(post)
    logger.info("Post deleted", post_id=post.id, by=user.id)
    effects.add(
        "broadcast:postDeleted",
        hub.broadcast,
        community_channel(post.community_id),
        "postDeleted",
        {"id": post.id, "community": post.community_id},
    )
    return post


def _clamp_paging(page: int, limit: int) -> tuple[int, int]:
    return max(page, 1), min(max(limit, 1), MAX_PAGE_SIZE)


def get_community_posts(posts: PostRepository, community_id: int, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> Dict[str, Any]:
    page, limit = _clamp_paging(page, limit)
    return posts.list_for_community(community_id, page=page, limit=limit)


def get_community_discussions(
    posts: PostRepository,
    communities: CommunityRepository,
    id_or_slug: str,
    user: Optional[User],
    page: int = 1,
    limit: int = 10,
) -> Dict[str, Any]:
    community = resolve_community(communities, id_or_slug)
    ensure_can_view(community, user)
    result = get_community_posts(posts, community.id, page=page, limit=limit)
    result["community"] = community
    return result
