"""
VidTube API — Subscription routes.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.api.deps import RequestContext, get_context, parse_uuid, require_context
from vidtube.core.database import get_db
from vidtube.core.errors import NotFoundError
from vidtube.core.responses import respond
from vidtube.models.models import User
from vidtube.schemas.schemas import ChannelSubscriber, SubscribedChannel
from vidtube.services.engagement.toggle_service import ToggleState, toggle_service
from vidtube.services.views.composer import view_composer
from vidtube.services.views.read_models import channel_subscribers, subscribed_channels

router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])


async def _require_user(db: AsyncSession, raw_id: str, label: str) -> User:
    user = await db.get(User, parse_uuid(raw_id, f"{label} ID"))
    if user is None:
        raise NotFoundError(f"{label.capitalize()} does not exist")
    return user


@router.post("/c/{channel_id}")
async def toggle_subscription(
    channel_id: str,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    state = await toggle_service.toggle_subscription(
        db, ctx.user.id, parse_uuid(channel_id, "channel ID"),
    )
    await db.commit()
    subscribed = state is ToggleState.ADDED
    message = "Subscribed successfully" if subscribed else "Unsubscribed successfully"
    return respond({"isSubscribed": subscribed}, message)


@router.get("/c/{channel_id}")
async def get_channel_subscribers(
    channel_id: str,
    ctx: RequestContext = Depends(get_context),
    db: AsyncSession = Depends(get_db),
):
    channel = await _require_user(db, channel_id, "channel")
    docs = await view_composer.run(db, channel_subscribers(str(channel.id), ctx.viewer_id))
    subscribers = [ChannelSubscriber.model_validate(d) for d in docs if d.get("subscriber")]
    return respond(subscribers, "Subscribers fetched successfully")


@router.get("/u/{subscriber_id}")
async def get_subscribed_channels(
    subscriber_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Channels a user follows, each with its most recent published video."""
    subscriber = await _require_user(db, subscriber_id, "subscriber")
    docs = await view_composer.run(db, subscribed_channels(str(subscriber.id)))
    channels = [SubscribedChannel.model_validate(d) for d in docs if d.get("channel")]
    return respond(channels, "Subscribed channels fetched successfully")
