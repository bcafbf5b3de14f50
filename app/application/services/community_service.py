"""Community service: creation, lookup and the membership workflow."""

import re
from typing import Any, List, Optional

import structlog
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import (
    ConflictException,
    EntityNotFoundException,
    ForbiddenException,
    ValidationException,
)
from app.core.tags import parse_tags
from app.domain.models.community import VISIBILITIES, Community
from app.domain.models.user import User
from app.domain.repositories.community_repository import CommunityRepository
from app.infrastructure.file_storage import UploadPayload, discard_upload, save_upload

logger = structlog.get_logger(__name__)

RECOMMENDATION_LIMIT = 10


def slugify(name: str) -> str:
    """Lower-case, ASCII letters/digits, words joined by single hyphens."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.strip().lower())
    return slug.strip("-")


def resolve_community(repo: CommunityRepository, id_or_slug: str) -> Community:
    """Find a community by id, falling back to its slug.

    The id is tried first whenever the input looks like one, so an existing id
    always wins over a community whose slug happens to be the same digits.
    """
    key = str(id_or_slug).strip()
    community = None
    if key.isascii() and key.isdigit():
        community = repo.get_by_id(int(key))
    if community is None:
        community = repo.get_by_slug(key)
    if community is None:
        raise EntityNotFoundException("Community not found.", {"idOrSlug": key})
    return community


def ensure_can_view(community: Community, user: Optional[User]) -> None:
    if community.visibility == "private" and (user is None or not community.is_member(user.id)):
        raise ForbiddenException("This community is private.")


def create_community(
    repo: CommunityRepository,
    creator: User,
    name: str,
    description: str,
    categories: Any,
    cover_image: Optional[UploadPayload] = None,
    visibility: str = "public",
    rules: Any = None,
) -> Community:
    name = (name or "").strip()
    description = (description or "").strip()
    category_tags = parse_tags(categories)
    if not name or not description or not category_tags:
        raise ValidationException("Please provide name, description, and categories.")
    if visibility not in VISIBILITIES:
        raise ValidationException(
            f"Visibility must be one of: {', '.join(VISIBILITIES)}", {"field": "visibility"}
        )

    slug = slugify(name)
    if not slug:
        raise ValidationException("Community name must contain letters or digits.", {"field": "name"})
    if repo.exists_with_name_or_slug(name, slug):
        raise ConflictException("A community with this name already exists.", {"field": "name"})

    stored = save_upload(cover_image, prefix="coverImage") if cover_image else None
    try:
        community = repo.create_with_owner(
            name=name,
            slug=slug,
            description=description,
            categories=category_tags,
            owner_id=creator.id,
            cover_image=stored.url_path if stored else None,
            visibility=visibility,
            rules=[r.strip() for r in (rules or []) if r and r.strip()],
        )
    except IntegrityError:
        discard_upload(stored)
        raise ConflictException("A community with this name already exists.", {"field": "name"})
    except Exception:
        discard_upload(stored)
        raise

    logger.info("Community created", community_id=community.id, slug=community.slug, admin_id=creator.id)
    return community


def get_community_information(
    repo: CommunityRepository, id_or_slug: str, user: Optional[User] = None
) -> Community:
    community = resolve_community(repo, id_or_slug)
    ensure_can_view(community, user)
    return community


def join_community(repo: CommunityRepository, id_or_slug: str, user: User) -> Community:
    community = resolve_community(repo, id_or_slug)

    if community.is_banned(user.id):
        raise ForbiddenException("You are banned from joining this community.")
    if community.is_member(user.id):
        raise ConflictException("You are already a member of this community.")
    if community.visibility == "private":
        # No request/approval queue exists, private communities are closed to direct joins
        raise ForbiddenException(
            "This is a private community. Membership requires admin approval or a separate request process."
        )

    try:
        repo.add_member(community.id, user.id)
    except IntegrityError:
        raise ConflictException("You are already a member of this community.")

    logger.info("Member joined", community_id=community.id, user_id=user.id)
    return repo.refresh(community)


def leave_community(repo: CommunityRepository, id_or_slug: str, user: User) -> Community:
    community = resolve_community(repo, id_or_slug)

    if community.admin_id == user.id:
        raise ForbiddenException("The community owner cannot leave the community.")
    if not repo.remove_member(community.id, user.id):
        raise ConflictException("You are not a member of this community.")

    logger.info("Member left", community_id=community.id, user_id=user.id)
    return repo.refresh(community)


def _ensure_admin(community: Community, user: User) -> None:
    if community.role_of(user.id) != "admin":
        raise ForbiddenException("Only community admins can manage bans.")


def ban_user(repo: CommunityRepository, id_or_slug: str, target_user_id: int, requester: User) -> Community:
    community = resolve_community(repo, id_or_slug)
    _ensure_admin(community, requester)

    if target_user_id == community.admin_id:
        raise ForbiddenException("The community owner cannot be banned.")
    if community.is_banned(target_user_id):
        raise ConflictException("User is already banned from this community.")

    try:
        repo.ban_user(community.id, target_user_id)
    except IntegrityError:
        raise ConflictException("User is already banned from this community.")

    logger.info("User banned", community_id=community.id, user_id=target_user_id, by=requester.id)
    return repo.refresh(community)


def unban_user(repo: CommunityRepository, id_or_slug: str, target_user_id: int, requester: User) -> Community:
    community = resolve_community(repo, id_or_slug)
    _ensure_admin(community, requester)

    if not repo.unban_user(community.id, target_user_id):
        raise EntityNotFoundException("User is not banned from this community.")

    logger.info("User unbanned", community_id=community.id, user_id=target_user_id, by=requester.id)
    return repo.refresh(community)


def get_user_communities(repo: CommunityRepository, user: User) -> List[Community]:
    return repo.list_for_member(user.id)


def get_popular_communities(repo: CommunityRepository, limit: int = 10) -> List[Community]:
    # "Popular" means newest, not most engaged
    return repo.list_newest_public(limit)


def get_recommended_communities(repo: CommunityRepository, user: User) -> List[Community]:
    interests = user.interests or []
    if not interests:
        return []
    return repo.list_recommended(user.id, interests, RECOMMENDATION_LIMIT)
