"""
VidTube API Schemas — Pydantic v2 models for request/response validation.

Documents use snake_case internally; every schema serializes with camelCase
aliases (``fullName``, ``isLiked``, ``totalLikes``, …). Fields that are not
declared here (stored credentials in particular) never reach a response.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True,
    )


class RequestModel(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)


# ═══════════════════════════════════════════════════════════════════════
# Shared
# ═══════════════════════════════════════════════════════════════════════

class AssetSchema(CamelModel):
    url: str
    asset_id: str


class OwnerSchema(CamelModel):
    id: str
    username: str
    full_name: str
    avatar: Optional[AssetSchema] = None
    email: Optional[str] = None


# ═══════════════════════════════════════════════════════════════════════
# Users
# ═══════════════════════════════════════════════════════════════════════

class UserSchema(CamelModel):
    id: str
    username: str
    email: str
    full_name: str
    avatar: AssetSchema
    cover_image: Optional[AssetSchema] = None
    created_at: datetime
    updated_at: datetime


class ChannelProfile(CamelModel):
    id: str
    username: str
    email: str
    full_name: str
    avatar: AssetSchema
    cover_image: Optional[AssetSchema] = None
    subscribers_count: int = 0
    channels_subscribed_to_count: int = 0
    is_subscribed: bool = False
    created_at: datetime


class TokenPair(CamelModel):
    access_token: str
    refresh_token: str


class LoginResult(TokenPair):
    user: UserSchema


class LoginRequest(RequestModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class RefreshRequest(RequestModel):
    refresh_token: Optional[str] = None


class ChangePasswordRequest(RequestModel):
    old_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


class AccountUpdate(RequestModel):
    full_name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3, pattern=r"^[^@\s]+@[^@\s]+$")


# ═══════════════════════════════════════════════════════════════════════
# Videos
# ═══════════════════════════════════════════════════════════════════════

class VideoSchema(CamelModel):
    id: str
    video_file: AssetSchema
    thumbnail: AssetSchema
    title: str
    description: str
    duration: float = 0.0
    views: int = 0
    is_published: bool = True
    owner_id: str
    created_at: datetime
    updated_at: datetime


class VideoSummary(VideoSchema):
    owner: Optional[OwnerSchema] = None


class ChannelOwner(OwnerSchema):
    subscribers_count: int = 0
    is_subscribed: bool = False


class VideoDetail(VideoSchema):
    owner: Optional[ChannelOwner] = None
    total_likes: int = 0
    is_liked: bool = False


class VideoPage(CamelModel):
    videos: List[VideoSummary]
    page: int
    limit: int
    total_videos: int
    total_pages: int


class ChannelVideo(VideoSchema):
    total_likes: int = 0


class ChannelStats(CamelModel):
    total_subscribers: int = 0
    total_videos: int = 0
    total_views: int = 0
    total_likes: int = 0


# ═══════════════════════════════════════════════════════════════════════
# Comments / Tweets
# ═══════════════════════════════════════════════════════════════════════

class ContentRequest(RequestModel):
    content: str = Field(..., min_length=1, max_length=5000)


class CommentSchema(CamelModel):
    id: str
    content: str
    video_id: str
    owner_id: str
    created_at: datetime
    updated_at: datetime


class CommentView(CamelModel):
    id: str
    content: str
    owner: Optional[OwnerSchema] = None
    total_likes: int = 0
    is_liked: bool = False
    created_at: datetime
    updated_at: datetime


class TweetSchema(CamelModel):
    id: str
    content: str
    owner_id: str
    created_at: datetime
    updated_at: datetime


class TweetView(CamelModel):
    id: str
    content: str
    owner: Optional[OwnerSchema] = None
    total_likes: int = 0
    is_liked: bool = False
    created_at: datetime


# ═══════════════════════════════════════════════════════════════════════
# Likes / Subscriptions
# ═══════════════════════════════════════════════════════════════════════

class LikedVideo(CamelModel):
    id: str
    video: VideoSummary
    created_at: datetime


class SubscriberProfile(ChannelOwner):
    pass


class ChannelSubscriber(CamelModel):
    subscriber: SubscriberProfile
    created_at: datetime


class SubscribedChannelProfile(OwnerSchema):
    latest_video: Optional[VideoSchema] = None


class SubscribedChannel(CamelModel):
    channel: SubscribedChannelProfile
    created_at: datetime


# ═══════════════════════════════════════════════════════════════════════
# Playlists
# ═══════════════════════════════════════════════════════════════════════

class PlaylistCreate(RequestModel):
    name: str = Field(..., min_length=1, max_length=256)
    description: str = Field(..., min_length=1)


class PlaylistUpdate(RequestModel):
    name: Optional[str] = Field(None, max_length=256)
    description: Optional[str] = None


class PlaylistSchema(CamelModel):
    id: str
    name: str
    description: str
    owner_id: str
    videos: List[str] = []
    created_at: datetime
    updated_at: datetime


class PlaylistSummary(CamelModel):
    id: str
    name: str
    description: str
    owner_id: str
    videos: List[VideoSchema] = []
    total_videos: int = 0
    total_views: int = 0
    created_at: datetime
    updated_at: datetime


class PlaylistDetail(PlaylistSummary):
    owner: Optional[OwnerSchema] = None
    videos: List[VideoSummary] = []
