"""
VidTube ORM Models — one table per collection.

References between collections are plain indexed UUID columns; the store
enforces no referential integrity and the application performs every cascade.
Set-valued references (watch history, playlist membership) are JSON arrays of
id strings.
"""
from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Type

from sqlalchemy import JSON, Boolean, DateTime, Enum, Float, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from vidtube.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════════════

class LikeTarget(str, enum.Enum):
    VIDEO = "video"
    COMMENT = "comment"
    TWEET = "tweet"


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


# ═══════════════════════════════════════════════════════════════════════
# Accounts
# ═══════════════════════════════════════════════════════════════════════

class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    email: Mapped[str] = mapped_column(String(256), unique=True, index=True)
    full_name: Mapped[str] = mapped_column(String(256), index=True)
    password: Mapped[str] = mapped_column(String(256))
    refresh_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Asset references: {"url": ..., "asset_id": ...}
    avatar: Mapped[dict] = mapped_column(JSON)
    cover_image: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    watch_history: Mapped[List[str]] = mapped_column(JSON, default=list)


class Subscription(TimestampMixin, Base):
    """A row means ``subscriber`` follows ``channel``."""
    __tablename__ = "subscriptions"
    __table_args__ = (
        Index("ix_subscriptions_pair", "channel_id", "subscriber_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    channel_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True)
    subscriber_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True)


# ═══════════════════════════════════════════════════════════════════════
# Content
# ═══════════════════════════════════════════════════════════════════════

class Video(TimestampMixin, Base):
    __tablename__ = "videos"
    __table_args__ = (
        Index("ix_videos_owner_published", "owner_id", "is_published"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    video_file: Mapped[dict] = mapped_column(JSON)
    thumbnail: Mapped[dict] = mapped_column(JSON)
    title: Mapped[str] = mapped_column(String(512))
    description: Mapped[str] = mapped_column(Text)
    duration: Mapped[float] = mapped_column(Float, default=0.0)
    views: Mapped[int] = mapped_column(Integer, default=0)
    is_published: Mapped[bool] = mapped_column(Boolean, default=True)
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True)


class Comment(TimestampMixin, Base):
    __tablename__ = "comments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    content: Mapped[str] = mapped_column(Text)
    video_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True)
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True)


class Tweet(TimestampMixin, Base):
    __tablename__ = "tweets"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    content: Mapped[str] = mapped_column(Text)
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True)


class Like(TimestampMixin, Base):
    """A like on exactly one target: ``(target_kind, target_id)``."""
    __tablename__ = "likes"
    __table_args__ = (
        Index("ix_likes_target", "target_kind", "target_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    liked_by_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True)
    target_kind: Mapped[LikeTarget] = mapped_column(
        Enum(LikeTarget, values_callable=lambda kinds: [k.value for k in kinds]),
    )
    target_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True)


class Playlist(TimestampMixin, Base):
    __tablename__ = "playlists"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(256))
    description: Mapped[str] = mapped_column(Text)
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True)
    # Ordered set of video ids
    videos: Mapped[List[str]] = mapped_column(JSON, default=list)


# Collection name → model, as addressed by view pipelines
COLLECTIONS: Dict[str, Type[Base]] = {
    "users": User,
    "videos": Video,
    "comments": Comment,
    "tweets": Tweet,
    "likes": Like,
    "subscriptions": Subscription,
    "playlists": Playlist,
}

LIKE_TARGET_MODELS: Dict[LikeTarget, Type[Base]] = {
    LikeTarget.VIDEO: Video,
    LikeTarget.COMMENT: Comment,
    LikeTarget.TWEET: Tweet,
}
