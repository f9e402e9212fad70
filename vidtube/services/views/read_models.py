"""
VidTube Read Models — the canonical view pipelines served by the API.

Three shapes recur:
  1. single entity by id, enriched (owner, counts, viewer flags)
  2. collection by owner / membership, enriched and sorted
  3. polymorphic target resolution (likes → liked videos)

``viewer_id`` is ``None`` for anonymous requests; viewer-relative flags then
evaluate to ``False``.
"""
from __future__ import annotations

from typing import Optional

from vidtube.models.models import LikeTarget
from vidtube.services.views.pipeline import (
    Pipeline,
    contains,
    first_or_null,
    size,
    sum_of,
)

# Public owner fields exposed next to content
OWNER_FIELDS = ("username", "full_name", "avatar")
CONTACT_FIELDS = OWNER_FIELDS + ("email",)
PROFILE_FIELDS = CONTACT_FIELDS + ("cover_image", "created_at", "updated_at")

VIDEO_SORT_FIELDS = {
    "createdAt": "created_at",
    "views": "views",
    "duration": "duration",
    "title": "title",
}


def owner_profile(*fields: str) -> Pipeline:
    return Pipeline().project(*(fields or OWNER_FIELDS))


def likes_on(kind: LikeTarget) -> Pipeline:
    return Pipeline().select(target_kind=kind)


def with_owner(pipeline: Pipeline, *fields: str) -> Pipeline:
    return (
        pipeline
        .expand("owner_id", "users", as_="owner", pipeline=owner_profile(*fields))
        .derive(owner=first_or_null("owner"))
    )


def with_likes(pipeline: Pipeline, kind: LikeTarget, viewer_id: Optional[str]) -> Pipeline:
    return (
        pipeline
        .expand("id", "likes", "target_id", as_="likes", pipeline=likes_on(kind))
        .derive(
            total_likes=size("likes"),
            is_liked=contains("likes", "liked_by_id", viewer_id),
        )
        .project(exclude=("likes",))
    )


# ── Users / channels ─────────────────────────────────────────────────────

def channel_profile(username: str, viewer_id: Optional[str]) -> Pipeline:
    return (
        Pipeline.over("users")
        .select(username=username.lower())
        .expand("id", "subscriptions", "channel_id", as_="subscribers")
        .expand("id", "subscriptions", "subscriber_id", as_="subscribed_to")
        .derive(
            subscribers_count=size("subscribers"),
            channels_subscribed_to_count=size("subscribed_to"),
            is_subscribed=contains("subscribers", "subscriber_id", viewer_id),
        )
        .project(*PROFILE_FIELDS, "subscribers_count", "channels_subscribed_to_count", "is_subscribed")
    )


def watch_history(user_id: str) -> Pipeline:
    videos = with_owner(Pipeline())
    return (
        Pipeline.over("users")
        .select(id=user_id)
        .expand("watch_history", "videos", as_="history", pipeline=videos)
        .project("history")
    )


# ── Videos ───────────────────────────────────────────────────────────────

def video_listing(
    page: int,
    limit: int,
    owner_id: Optional[str] = None,
    query: Optional[str] = None,
    sort_by: str = "created_at",
    descending: bool = True,
) -> Pipeline:
    pipeline = Pipeline.over("videos").select(is_published=True)
    if owner_id:
        pipeline = pipeline.select(owner_id=owner_id)
    if query:
        pipeline = pipeline.search(query, ("title", "description"))
    pipeline = pipeline.sort(sort_by, descending).page(page, limit)
    return with_owner(pipeline, *CONTACT_FIELDS)


def video_detail(video_id: str, viewer_id: Optional[str]) -> Pipeline:
    channel = (
        Pipeline()
        .expand("id", "subscriptions", "channel_id", as_="subscribers")
        .derive(
            subscribers_count=size("subscribers"),
            is_subscribed=contains("subscribers", "subscriber_id", viewer_id),
        )
        .project(*CONTACT_FIELDS, "subscribers_count", "is_subscribed")
    )
    pipeline = (
        Pipeline.over("videos")
        .select(id=video_id)
        .expand("owner_id", "users", as_="owner", pipeline=channel)
        .derive(owner=first_or_null("owner"))
    )
    return with_likes(pipeline, LikeTarget.VIDEO, viewer_id)


def channel_videos(owner_id: str) -> Pipeline:
    """Every video of a channel, published or not, for its dashboard."""
    return (
        Pipeline.over("videos")
        .select(owner_id=owner_id)
        .sort("created_at")
        .expand("id", "likes", "target_id", as_="likes", pipeline=likes_on(LikeTarget.VIDEO))
        .derive(total_likes=size("likes"))
        .project(exclude=("likes",))
    )


def channel_stats(owner_id: str) -> Pipeline:
    videos = (
        Pipeline()
        .expand("id", "likes", "target_id", as_="likes", pipeline=likes_on(LikeTarget.VIDEO))
        .derive(total_likes=size("likes"))
        .project("views", "total_likes")
    )
    return (
        Pipeline.over("users")
        .select(id=owner_id)
        .expand("id", "subscriptions", "channel_id", as_="subscribers")
        .expand("id", "videos", "owner_id", as_="videos", pipeline=videos)
        .derive(
            total_subscribers=size("subscribers"),
            total_videos=size("videos"),
            total_views=sum_of("videos", "views"),
            total_likes=sum_of("videos", "total_likes"),
        )
        .project("total_subscribers", "total_videos", "total_views", "total_likes")
    )


# ── Comments / tweets ────────────────────────────────────────────────────

def video_comments(video_id: str, viewer_id: Optional[str], page: int, limit: int) -> Pipeline:
    pipeline = (
        Pipeline.over("comments")
        .select(video_id=video_id)
        .sort("created_at")
        .page(page, limit)
    )
    return with_likes(with_owner(pipeline, *CONTACT_FIELDS), LikeTarget.COMMENT, viewer_id)


def user_tweets(owner_id: str, viewer_id: Optional[str]) -> Pipeline:
    pipeline = Pipeline.over("tweets").select(owner_id=owner_id).sort("created_at")
    return with_likes(with_owner(pipeline, *CONTACT_FIELDS), LikeTarget.TWEET, viewer_id)


# ── Likes ────────────────────────────────────────────────────────────────

def liked_videos(user_id: str) -> Pipeline:
    return (
        Pipeline.over("likes")
        .select(liked_by_id=user_id, target_kind=LikeTarget.VIDEO)
        .sort("created_at")
        .expand("target_id", "videos", as_="video", pipeline=with_owner(Pipeline(), *CONTACT_FIELDS))
        .derive(video=first_or_null("video"))
        .project("video", "created_at")
    )


# ── Subscriptions ────────────────────────────────────────────────────────

def channel_subscribers(channel_id: str, viewer_id: Optional[str]) -> Pipeline:
    subscriber = (
        Pipeline()
        .expand("id", "subscriptions", "channel_id", as_="subscribers")
        .derive(
            subscribers_count=size("subscribers"),
            is_subscribed=contains("subscribers", "subscriber_id", viewer_id),
        )
        .project(*CONTACT_FIELDS, "subscribers_count", "is_subscribed")
    )
    return (
        Pipeline.over("subscriptions")
        .select(channel_id=channel_id)
        .sort("created_at")
        .expand("subscriber_id", "users", as_="subscriber", pipeline=subscriber)
        .derive(subscriber=first_or_null("subscriber"))
        .project("subscriber", "created_at")
    )


def subscribed_channels(subscriber_id: str) -> Pipeline:
    latest = Pipeline().select(is_published=True).sort("created_at")
    channel = (
        Pipeline()
        .expand("id", "videos", "owner_id", as_="videos", pipeline=latest)
        .derive(latest_video=first_or_null("videos"))
        .project(*CONTACT_FIELDS, "latest_video")
    )
    return (
        Pipeline.over("subscriptions")
        .select(subscriber_id=subscriber_id)
        .sort("created_at")
        .expand("channel_id", "users", as_="channel", pipeline=channel)
        .derive(channel=first_or_null("channel"))
        .project("channel", "created_at")
    )


# ── Playlists ────────────────────────────────────────────────────────────

def _published_playlist_videos(pipeline: Pipeline, videos: Pipeline) -> Pipeline:
    return (
        pipeline
        .expand("videos", "videos", as_="videos", pipeline=videos)
        .derive(total_videos=size("videos"), total_views=sum_of("videos", "views"))
    )


def user_playlists(owner_id: str) -> Pipeline:
    pipeline = Pipeline.over("playlists").select(owner_id=owner_id).sort("updated_at")
    return _published_playlist_videos(pipeline, Pipeline().select(is_published=True))


def playlist_detail(playlist_id: str) -> Pipeline:
    pipeline = with_owner(Pipeline.over("playlists").select(id=playlist_id), *CONTACT_FIELDS)
    videos = with_owner(Pipeline().select(is_published=True))
    return _published_playlist_videos(pipeline, videos)
