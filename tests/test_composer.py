"""View composer execution against an in-memory store."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import event

from vidtube.core.errors import StoreError
from vidtube.models.models import Comment, Like, LikeTarget, Subscription, User, Video
from vidtube.services.views.composer import view_composer
from vidtube.services.views.pipeline import Pipeline
from vidtube.services.views.read_models import (
    channel_profile,
    channel_stats,
    liked_videos,
    video_comments,
    video_detail,
    video_listing,
    watch_history,
)

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _asset(name):
    return {"url": f"http://media.test/{name}", "asset_id": name}


def make_user(username, **kwargs):
    return User(
        id=uuid.uuid4(),
        username=username,
        email=f"{username}@x.com",
        full_name=username.title(),
        password="hashed",
        avatar=_asset(f"{username}.png"),
        watch_history=kwargs.pop("watch_history", []),
        **kwargs,
    )


def make_video(owner, title, minutes=0, **kwargs):
    return Video(
        id=uuid.uuid4(),
        video_file=_asset(f"{title}.mp4"),
        thumbnail=_asset(f"{title}.jpg"),
        title=title,
        description=kwargs.pop("description", f"{title} description"),
        duration=1.0,
        views=kwargs.pop("views", 0),
        is_published=kwargs.pop("is_published", True),
        owner_id=owner.id,
        created_at=T0 + timedelta(minutes=minutes),
        updated_at=T0 + timedelta(minutes=minutes),
    )


@pytest.fixture
async def channel(db):
    alice, bob = make_user("alice"), make_user("bob")
    videos = [
        make_video(alice, "cats", 1, views=5),
        make_video(alice, "dogs", 2, views=7),
        make_video(alice, "draft", 3, is_published=False, views=100),
        make_video(bob, "birds", 4),
    ]
    db.add_all([alice, bob, *videos])
    await db.commit()
    return alice, bob, videos


@pytest.fixture
def query_log(engine):
    statements = []

    def record(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(engine.sync_engine, "before_cursor_execute", record)
    yield statements
    event.remove(engine.sync_engine, "before_cursor_execute", record)


async def test_listing_is_newest_first_with_owner_attached(db, channel):
    alice, bob, _ = channel

    docs = await view_composer.run(db, video_listing(1, 10))

    assert [d["title"] for d in docs] == ["birds", "dogs", "cats"]
    assert docs[0]["owner"]["username"] == "bob"
    assert docs[1]["owner"]["id"] == str(alice.id)
    assert "password" not in docs[1]["owner"]


async def test_listing_window_search_and_count(db, channel):
    alice, _, _ = channel

    page_two = await view_composer.run(db, video_listing(2, 1, owner_id=str(alice.id)))
    assert [d["title"] for d in page_two] == ["cats"]

    searched = video_listing(1, 10, query="DOG")
    assert [d["title"] for d in await view_composer.run(db, searched)] == ["dogs"]
    assert await view_composer.count(db, searched) == 1

    by_views = await view_composer.run(db, video_listing(1, 10, sort_by="views", descending=False))
    assert [d["views"] for d in by_views] == [0, 5, 7]


async def test_search_treats_wildcards_literally(db, channel):
    alice, _, _ = channel
    db.add_all([
        make_video(alice, "100% cats", 5, description="plain"),
        make_video(alice, "snake_case", 6, description="back\\slash"),
    ])
    await db.commit()

    async def titles(query):
        return [d["title"] for d in await view_composer.run(db, video_listing(1, 10, query=query))]

    assert await titles("%") == ["100% cats"]
    assert await titles("_") == ["snake_case"]
    assert await titles("e_c") == ["snake_case"]
    assert await titles("\\") == ["snake_case"]
    assert await titles("0%") == ["100% cats"]
    assert await view_composer.count(db, video_listing(1, 10, query="_")) == 1


async def test_empty_listing_is_an_empty_collection(db):
    assert await view_composer.run(db, video_listing(1, 10)) == []
    assert await view_composer.count(db, video_listing(1, 10)) == 0


async def test_video_detail_counts_and_viewer_flags(db, channel):
    alice, bob, videos = channel
    cats = videos[0]
    db.add_all([
        Like(liked_by_id=bob.id, target_kind=LikeTarget.VIDEO, target_id=cats.id),
        Like(liked_by_id=alice.id, target_kind=LikeTarget.VIDEO, target_id=cats.id),
        # same id space, different target kind: must not count
        Like(liked_by_id=bob.id, target_kind=LikeTarget.COMMENT, target_id=cats.id),
        Subscription(channel_id=alice.id, subscriber_id=bob.id),
    ])
    await db.commit()

    as_bob = await view_composer.first(db, video_detail(str(cats.id), str(bob.id)))
    assert as_bob["total_likes"] == 2
    assert as_bob["is_liked"] is True
    assert as_bob["owner"]["subscribers_count"] == 1
    assert as_bob["owner"]["is_subscribed"] is True
    assert "likes" not in as_bob

    anonymous = await view_composer.first(db, video_detail(str(cats.id), None))
    assert anonymous["is_liked"] is False
    assert anonymous["owner"]["is_subscribed"] is False


async def test_missing_single_entity_resolves_to_none(db, channel):
    assert await view_composer.first(db, video_detail(str(uuid.uuid4()), None)) is None
    assert await view_composer.first(db, channel_profile("nobody", None)) is None


async def test_owner_collapses_to_none_when_missing(db):
    ghost = make_user("ghost")
    db.add(make_video(ghost, "orphan"))
    await db.commit()

    docs = await view_composer.run(db, video_listing(1, 10))
    assert docs[0]["owner"] is None


async def test_channel_profile_counts_both_directions(db, channel):
    alice, bob, _ = channel
    carol = make_user("carol")
    db.add_all([
        carol,
        Subscription(channel_id=alice.id, subscriber_id=bob.id),
        Subscription(channel_id=alice.id, subscriber_id=carol.id),
        Subscription(channel_id=bob.id, subscriber_id=alice.id),
    ])
    await db.commit()

    profile = await view_composer.first(db, channel_profile("ALICE", str(carol.id)))
    assert profile["subscribers_count"] == 2
    assert profile["channels_subscribed_to_count"] == 1
    assert profile["is_subscribed"] is True
    assert "password" not in profile and "refresh_token" not in profile


async def test_channel_stats_aggregate(db, channel):
    alice, bob, videos = channel
    db.add_all([
        Like(liked_by_id=bob.id, target_kind=LikeTarget.VIDEO, target_id=videos[0].id),
        Like(liked_by_id=bob.id, target_kind=LikeTarget.VIDEO, target_id=videos[1].id),
        Subscription(channel_id=alice.id, subscriber_id=bob.id),
    ])
    await db.commit()

    stats = await view_composer.first(db, channel_stats(str(alice.id)))
    assert stats["total_subscribers"] == 1
    assert stats["total_videos"] == 3
    assert stats["total_views"] == 112
    assert stats["total_likes"] == 2


async def test_watch_history_follows_list_membership(db, channel):
    alice, _, videos = channel
    cats, dogs, birds = str(videos[0].id), str(videos[1].id), str(videos[3].id)
    forward = make_user("forward", watch_history=[cats, birds, str(uuid.uuid4())])
    backward = make_user("backward", watch_history=[birds, dogs, cats])
    db.add_all([forward, backward])
    await db.commit()

    doc = await view_composer.first(db, watch_history(str(forward.id)))
    assert [v["title"] for v in doc["history"]] == ["cats", "birds"]
    assert doc["history"][0]["owner"]["username"] == "alice"

    doc = await view_composer.first(db, watch_history(str(backward.id)))
    assert [v["title"] for v in doc["history"]] == ["birds", "dogs", "cats"]


async def test_liked_videos_avoids_per_document_queries(db, channel, query_log):
    alice, bob, videos = channel
    for video in videos:
        db.add(Like(liked_by_id=bob.id, target_kind=LikeTarget.VIDEO, target_id=video.id))
    await db.commit()
    query_log.clear()

    docs = await view_composer.run(db, liked_videos(str(bob.id)))

    assert len(docs) == 4
    assert all(d["video"]["owner"] is not None for d in docs)
    # likes, videos, users: one query per stage regardless of document count
    assert len(query_log) == 3


async def test_comment_pages_are_windowed_in_the_store(db, channel):
    alice, bob, videos = channel
    for i in range(5):
        db.add(Comment(
            content=f"comment {i}", video_id=videos[0].id, owner_id=bob.id,
            created_at=T0 + timedelta(minutes=i), updated_at=T0 + timedelta(minutes=i),
        ))
    await db.commit()

    docs = await view_composer.run(db, video_comments(str(videos[0].id), None, page=2, limit=2))
    assert [d["content"] for d in docs] == ["comment 2", "comment 1"]
    assert all(d["is_liked"] is False and d["total_likes"] == 0 for d in docs)


async def test_unknown_collection_is_rejected(db):
    with pytest.raises(ValueError):
        await view_composer.run(db, Pipeline.over("channels"))
    with pytest.raises(ValueError):
        await view_composer.run(db, Pipeline().select(id="x"))


async def test_store_failure_surfaces_as_store_error(db, engine, channel):
    async with engine.begin() as conn:
        await conn.run_sync(Like.__table__.drop)

    _, _, videos = channel
    with pytest.raises(StoreError):
        await view_composer.first(db, video_detail(str(videos[0].id), None))
