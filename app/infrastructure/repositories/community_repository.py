"""
SQLAlchemy Implementation of Community Repository.

Membership writes touch three tables (community_members, the member_count
column and the user_joined_communities cache) and always commit them together.
Counters move through SQL expressions so concurrent joins never lose an update.
"""

from typing import List, Optional

from sqlalchemy import delete, insert, select
from sqlalchemy.orm import Session

from app.domain.models.community import Community, CommunityBan, CommunityCategory, CommunityMember
from app.domain.models.user import user_joined_communities
from app.domain.repositories.community_repository import CommunityRepository
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository


class SQLAlchemyCommunityRepository(SQLAlchemyRepository[Community], CommunityRepository):
    """Community repository implementation using SQLAlchemy."""

    def __init__(self, db: Session, model=Community):
        super().__init__(db, model)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_by_slug(self, slug: str) -> Optional[Community]:
        return self.db.query(Community).filter(Community.slug == slug).first()

    def exists_with_name_or_slug(self, name: str, slug: str) -> bool:
        found = (
            self.db.query(Community.id)
            .filter((Community.name == name) | (Community.slug == slug))
            .first()
        )
        return found is not None

    def list_for_member(self, user_id: int) -> List[Community]:
        return (
            self.db.query(Community)
            .join(CommunityMember, CommunityMember.community_id == Community.id)
            .filter(
                CommunityMember.user_id == user_id,
                Community.is_active.is_(True),
                Community.visibility != "hidden",
            )
            .order_by(CommunityMember.id)
            .all()
        )

    def list_newest_public(self, limit: int = 10) -> List[Community]:
        return (
            self.db.query(Community)
            .filter(Community.is_active.is_(True), Community.visibility == "public")
            .order_by(Community.created_at.desc(), Community.id.desc())
            .limit(limit)
            .all()
        )

    def list_recommended(self, user_id: int, interests: List[str], limit: int = 10) -> List[Community]:
        matching = select(CommunityCategory.community_id).where(CommunityCategory.name.in_(interests))
        joined = select(CommunityMember.community_id).where(CommunityMember.user_id == user_id)
        return (
            self.db.query(Community)
            .filter(
                Community.id.in_(matching),
                Community.id.not_in(joined),
                Community.is_active.is_(True),
                Community.visibility == "public",
            )
            .order_by(Community.member_count.desc(), Community.id)
            .limit(limit)
            .all()
        )

    def member_ids(self, community_id: int, exclude: Optional[int] = None) -> List[int]:
        query = select(CommunityMember.user_id).where(CommunityMember.community_id == community_id)
        if exclude is not None:
            query = query.where(CommunityMember.user_id != exclude)
        return list(self.db.execute(query.order_by(CommunityMember.id)).scalars())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

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
        community = Community(
            name=name,
            slug=slug,
            description=description,
            cover_image=cover_image,
            visibility=visibility,
            admin_id=owner_id,
            member_count=1,
            rules=rules or [],
            category_links=[CommunityCategory(name=c) for c in categories],
            members=[CommunityMember(user_id=owner_id, role="admin")],
        )
        self.db.add(community)
        try:
            self.db.flush()
            self._cache_add(community.id, owner_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(community)
        return community

    def add_member(self, community_id: int, user_id: int, role: str = "member") -> None:
        try:
            self.db.add(CommunityMember(community_id=community_id, user_id=user_id, role=role))
            self.db.flush()
            self._bump_member_count(community_id, 1)
            self._cache_add(community_id, user_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def remove_member(self, community_id: int, user_id: int) -> bool:
        try:
            removed = self._delete_membership(community_id, user_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return removed

    def ban_user(self, community_id: int, user_id: int) -> None:
        try:
            self._delete_membership(community_id, user_id)
            self.db.add(CommunityBan(community_id=community_id, user_id=user_id))
            self.db.flush()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def unban_user(self, community_id: int, user_id: int) -> bool:
        result = self.db.execute(
            delete(CommunityBan).where(
                CommunityBan.community_id == community_id,
                CommunityBan.user_id == user_id,
            )
        )
        self.db.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Helpers (no commit)
    # ------------------------------------------------------------------

    def _delete_membership(self, community_id: int, user_id: int) -> bool:
        result = self.db.execute(
            delete(CommunityMember).where(
                CommunityMember.community_id == community_id,
                CommunityMember.user_id == user_id,
            )
        )
        if not result.rowcount:
            return False
        self._bump_member_count(community_id, -1)
        self.db.execute(
            delete(user_joined_communities).where(
                user_joined_communities.c.community_id == community_id,
                user_joined_communities.c.user_id == user_id,
            )
        )
        return True

    def _bump_member_count(self, community_id: int, delta: int) -> None:
        self.db.query(Community).filter(Community.id == community_id).update(
            {Community.member_count: Community.member_count + delta},
            synchronize_session=False,
        )

    def _cache_add(self, community_id: int, user_id: int) -> None:
        cached = self.db.execute(
            select(user_joined_communities.c.user_id).where(
                user_joined_communities.c.community_id == community_id,
                user_joined_communities.c.user_id == user_id,
            )
        ).first()
        if cached is None:
            self.db.execute(
                insert(user_joined_communities).values(community_id=community_id, user_id=user_id)
            )
