"""
tests/test_post_service.py: Post Workflow Tests
==================================================
Post creation with its after-commit effects, vote toggling, listing and
soft deletion.
"""

from __future__ import annotations

import asyncio

import pytest

from app.application.services import community_service, post_service
from app.application.services.side_effects import AfterCommit
from app.core.exceptions import EntityNotFoundException, ForbiddenException, ValidationException
from app.domain.models.notification import Notification
from app.infrastructure.database import SessionLocal
from app.infrastructure.file_storage import UploadPayload
from app.infrastructure.realtime import ChannelHub, community_channel


class RecordingHub(ChannelHub):
    """Hub that remembers every broadcast instead of needing sockets."""

    def __init__(self):
        super().__init__()
        self.sent: list[tuple[str, str, dict]] = []

    async def broadcast(self, channel, event, data):
        self.sent.append((channel, event, data))
        return 0


class ExplodingHub(ChannelHub):
    async def broadcast(self, channel, event, data):
        raise RuntimeError("socket layer down")


@pytest.fixture
def hub():
    return RecordingHub()


@pytest.fixture
def python_devs(community_repo, make_user, make_community):
    """Owner plus three members: alice, bob and carol."""
    owner = make_user("owner")
    community = make_community(owner, "Python Devs")
    members = [make_user(name) for name in ("alice", "bob", "carol")]
    for member in members:
        community_service.join_community(community_repo, community.slug, member)
    return community, owner, members


def _create(post_repo, community_repo, author, community, hub, effects, content="Hello world", **kwargs):
    return post_service.create_post(
        post_repo,
        community_repo,
        author=author,
        content=content,
        community_id=community.id,
        hub=hub,
        session_factory=SessionLocal,
        effects=effects,
        **kwargs,
    )


class TestClassifyAttachment:
    @pytest.mark.parametrize(
        ("extension", "kind"),
        [(".png", "image"), (".JPG", "image"), (".mp4", "video"), (".webm", "video"), (".xyz", "image")],
    )
    def test_kinds(self, extension, kind):
        assert post_service.classify_attachment(extension) == kind


class TestCreatePost:
    def test_text_post_defaults(self, post_repo, community_repo, python_devs, hub):
        community, _, (alice, *_) = python_devs
        post = _create(post_repo, community_repo, alice, community, hub, AfterCommit(), content="x" * 80)

        assert post.type == "text"
        assert post.title == "x" * 50
        assert post.upvote_count == 0
        assert post.images == []
        assert post.author.username == "alice"

    def test_explicit_title(self, post_repo, community_repo, python_devs, hub):
        community, _, (alice, *_) = python_devs
        post = _create(post_repo, community_repo, alice, community, hub, AfterCommit(), title="My title")
        assert post.title == "My title"

    def test_image_attachment(self, post_repo, community_repo, python_devs, hub):
        community, _, (alice, *_) = python_devs
        attachment = UploadPayload(filename="pic.png", content=b"\x89PNG....", content_type="image/png")
        post = _create(post_repo, community_repo, alice, community, hub, AfterCommit(), attachment=attachment)

        assert post.type == "image"
        assert len(post.images) == 1
        assert post.images[0].startswith("http://testserver/uploads/file-")

    def test_video_attachment(self, post_repo, community_repo, python_devs, hub):
        community, _, (alice, *_) = python_devs
        attachment = UploadPayload(filename="clip.mp4", content=b"\x00" * 64, content_type="video/mp4")
        post = _create(post_repo, community_repo, alice, community, hub, AfterCommit(), attachment=attachment)

        assert post.type == "video"
        assert post.video_url.endswith(".mp4")
        assert post.images == []

    def test_content_required(self, post_repo, community_repo, python_devs, hub):
        community, _, (alice, *_) = python_devs
        with pytest.raises(ValidationException):
            _create(post_repo, community_repo, alice, community, hub, AfterCommit(), content="   ")

    def test_non_member_forbidden(self, post_repo, community_repo, python_devs, make_user, hub):
        community, _, _ = python_devs
        with pytest.raises(ForbiddenException):
            _create(post_repo, community_repo, make_user("stranger"), community, hub, AfterCommit())

    def test_unknown_community(self, post_repo, community_repo, python_devs, hub):
        _, _, (alice, *_) = python_devs
        with pytest.raises(EntityNotFoundException):
            post_service.create_post(
                post_repo, community_repo, alice, "Hello", 9999, hub, SessionLocal, AfterCommit()
            )


class TestPostEffects:
    def test_effects_are_queued_not_run(self, db_session, post_repo, community_repo, python_devs, hub):
        community, _, (alice, *_) = python_devs
        effects = AfterCommit()
        _create(post_repo, community_repo, alice, community, hub, effects)

        assert effects.names == ["broadcast:newPost", "notify:members"]
        assert hub.sent == []
        assert db_session.query(Notification).filter(Notification.type == "post").count() == 0

    def test_members_except_author_notified(self, db_session, post_repo, community_repo, python_devs, hub):
        community, owner, (alice, bob, carol) = python_devs
        effects = AfterCommit()
        post = _create(post_repo, community_repo, alice, community, hub, effects, content="Big news everyone")

        results = asyncio.run(effects.run())

        assert results == {"broadcast:newPost": True, "notify:members": True}
        notified = db_session.query(Notification).filter(Notification.type == "post").all()
        assert sorted(n.user_id for n in notified) == sorted([owner.id, bob.id, carol.id])
        sample = notified[0]
        assert sample.title == "New Post in Python Devs"
        assert sample.message == "alice posted: Big news everyone..."
        assert sample.data == {"communityId": community.id, "postId": post.id}
        assert sample.is_read is False

    def test_broadcast_payload(self, post_repo, community_repo, python_devs, hub):
        community, _, (alice, *_) = python_devs
        effects = AfterCommit()
        post = _create(post_repo, community_repo, alice, community, hub, effects)

        asyncio.run(effects.run())

        channel, event, data = hub.sent[0]
        assert channel == community_channel(community.id)
        assert event == "newPost"
        assert data["id"] == post.id
        assert data["community"] == community.id
        assert data["author"]["username"] == "alice"

    def test_failed_broadcast_keeps_post_and_notifications(self, db_session, post_repo, community_repo, python_devs):
        community, _, (alice, *_) = python_devs
        effects = AfterCommit()
        post = _create(post_repo, community_repo, alice, community, ExplodingHub(), effects)

        results = asyncio.run(effects.run())

        assert results["broadcast:newPost"] is False
        assert results["notify:members"] is True
        assert post_repo.get_by_id(post.id) is not None
        assert db_session.query(Notification).filter(Notification.type == "post").count() == 3

    def test_failed_fan_out_keeps_post_and_broadcast(self, db_session, post_repo, community_repo, python_devs, hub):
        community, _, (alice, *_) = python_devs

        def broken_session():
            raise RuntimeError("database unavailable")

        effects = AfterCommit()
        post = post_service.create_post(
            post_repo,
            community_repo,
            author=alice,
            content="Still here",
            community_id=community.id,
            hub=hub,
            session_factory=broken_session,
            effects=effects,
        )

        results = asyncio.run(effects.run())

        assert results == {"broadcast:newPost": True, "notify:members": False}
        assert [event for _, event, _ in hub.sent] == ["newPost"]
        assert post_repo.get_by_id(post.id) is not None
        assert db_session.query(Notification).filter(Notification.type == "post").count() == 0

    def test_author_alone_gets_no_notifications(self, db_session, post_repo, community_repo, make_user, make_community, hub):
        owner = make_user("owner")
        community = make_community(owner, "Solo")
        effects = AfterCommit()
        _create(post_repo, community_repo, owner, community, hub, effects)

        asyncio.run(effects.run())

        assert db_session.query(Notification).filter(Notification.type == "post").count() == 0


class TestVoting:
    def test_toggle_is_an_involution(self, post_repo, community_repo, python_devs, hub):
        community, _, (alice, bob, _) = python_devs
        post = _create(post_repo, community_repo, alice, community, hub, AfterCommit())

        voted = post_service.toggle_post_vote(post_repo, post.id, bob, hub, AfterCommit())
        assert voted.upvote_count == 1
        assert voted.upvoter_ids == [bob.id]

        unvoted = post_service.toggle_post_vote(post_repo, post.id, bob, hub, AfterCommit())
        assert unvoted.upvote_count == 0
        assert unvoted.upvoter_ids == []

    def test_count_matches_ledger(self, post_repo, community_repo, python_devs, hub):
        community, owner, (alice, bob, carol) = python_devs
        post = _create(post_repo, community_repo, alice, community, hub, AfterCommit())
        for voter in (owner, bob, carol):
            post_service.toggle_post_vote(post_repo, post.id, voter, hub, AfterCommit())
        post = post_service.toggle_post_vote(post_repo, post.id, bob, hub, AfterCommit())

        assert post.upvote_count == len(post.upvoter_ids) == 2
        assert set(post.upvoter_ids) == {owner.id, carol.id}

    def test_vote_queues_post_updated(self, post_repo, community_repo, python_devs, hub):
        community, _, (alice, bob, _) = python_devs
        post = _create(post_repo, community_repo, alice, community, hub, AfterCommit())
        effects = AfterCommit()

        post_service.toggle_post_vote(post_repo, post.id, bob, hub, effects)
        asyncio.run(effects.run())

        _, event, data = hub.sent[0]
        assert event == "postUpdated"
        assert data["upvoteCount"] == 1
        assert data["upvotes"] == [bob.id]

    def test_missing_post(self, post_repo, python_devs, hub):
        _, _, (alice, *_) = python_devs
        with pytest.raises(EntityNotFoundException):
            post_service.toggle_post_vote(post_repo, 424242, alice, hub, AfterCommit())

    @pytest.mark.parametrize("post_id", [0, -1, 2**31, 10**20])
    def test_out_of_range_id_is_not_found(self, post_repo, python_devs, hub, post_id):
        _, _, (alice, *_) = python_devs
        with pytest.raises(EntityNotFoundException):
            post_service.toggle_post_vote(post_repo, post_id, alice, hub, AfterCommit())


class TestDeleteAndList:
    def test_author_can_delete(self, post_repo, community_repo, python_devs, hub):
        community, _, (alice, *_) = python_devs
        post = _create(post_repo, community_repo, alice, community, hub, AfterCommit())
        effects = AfterCommit()

        deleted = post_service.delete_post(post_repo, community_repo, post.id, alice, hub, effects)
        asyncio.run(effects.run())

        assert deleted.is_deleted is True
        assert hub.sent[-1][1] == "postDeleted"
        with pytest.raises(EntityNotFoundException):
            post_service.toggle_post_vote(post_repo, post.id, alice, hub, AfterCommit())

    def test_community_admin_can_delete(self, post_repo, community_repo, python_devs, hub):
        community, owner, (alice, *_) = python_devs
        post = _create(post_repo, community_repo, alice, community, hub, AfterCommit())
        assert post_service.delete_post(post_repo, community_repo, post.id, owner, hub, AfterCommit()).is_deleted

    def test_other_member_cannot_delete(self, post_repo, community_repo, python_devs, hub):
        community, _, (alice, bob, _) = python_devs
        post = _create(post_repo, community_repo, alice, community, hub, AfterCommit())
        with pytest.raises(ForbiddenException):
            post_service.delete_post(post_repo, community_repo, post.id, bob, hub, AfterCommit())

    def test_listing_is_newest_first_without_deleted(self, post_repo, community_repo, python_devs, hub):
        community, _, (alice, *_) = python_devs
        first = _create(post_repo, community_repo, alice, community, hub, AfterCommit(), content="first")
        second = _create(post_repo, community_repo, alice, community, hub, AfterCommit(), content="second")
        gone = _create(post_repo, community_repo, alice, community, hub, AfterCommit(), content="gone")
        post_service.delete_post(post_repo, community_repo, gone.id, alice, hub, AfterCommit())

        result = post_service.get_community_posts(post_repo, community.id)

        assert [p.id for p in result["items"]] == [second.id, first.id]
        assert result["total"] == 2
        assert result["pages"] == 1

    def test_paging(self, post_repo, community_repo, python_devs, hub):
        community, _, (alice, *_) = python_devs
        for i in range(5):
            _create(post_repo, community_repo, alice, community, hub, AfterCommit(), content=f"post {i}")

        result = post_service.get_community_posts(post_repo, community.id, page=2, limit=2)

        assert len(result["items"]) == 2
        assert result["total"] == 5
        assert result["pages"] == 3

    def test_page_size_is_capped(self, post_repo, python_devs):
        community, _, _ = python_devs
        result = post_service.get_community_posts(post_repo, community.id, page=0, limit=1000)
        assert result["page"] == 1
        assert result["limit"] == post_service.MAX_PAGE_SIZE

    def test_discussions_respect_private_visibility(self, post_repo, community_repo, make_user, make_community):
        make_community(make_user("owner"), "Secret Club", visibility="private")
        with pytest.raises(ForbiddenException):
            post_service.get_community_discussions(post_repo, community_repo, "secret-club", make_user("alice"))


class TestAfterCommit:
    def test_sync_and_async_effects_run_in_order(self):
        calls = []

        async def async_effect(value):
            calls.append(value)

        effects = AfterCommit()
        effects.add("first", calls.append, 1)
        effects.add("second", async_effect, 2)

        results = asyncio.run(effects.run())

        assert calls == [1, 2]
        assert results == {"first": True, "second": True}
        assert len(effects) == 0

    def test_failure_is_isolated(self):
        calls = []

        def boom():
            raise ValueError("nope")

        effects = AfterCommit()
        effects.add("boom", boom)
        effects.add("after", calls.append, "ran")

        results = asyncio.run(effects.run())

        assert results == {"boom": False, "after": True}
        assert calls == ["ran"]
