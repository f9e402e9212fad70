"""
VidTube Toggle Service — likes and subscriptions as membership flips.

A toggle looks up the row identified by (target, actor): present → delete and
report REMOVED, absent → insert and report ADDED. The check and the write are
two separate statements with no lock; two concurrent toggles by the same actor
on the same target can both insert (duplicate row) or both delete.
"""
from __future__ import annotations

import enum
import logging
import uuid

from prometheus_client import Counter
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.core.errors import NotFoundError, ValidationFailed
from vidtube.models.models import LIKE_TARGET_MODELS, Like, LikeTarget, Subscription, User

logger = logging.getLogger(__name__)

TOGGLES = Counter(
    "vidtube_toggle_operations_total",
    "Like / subscription toggles by kind and resulting state",
    ["kind", "state"],
)


class ToggleState(str, enum.Enum):
    ADDED = "added"
    REMOVED = "removed"


class ToggleService:

    async def toggle_like(
        self, db: AsyncSession, actor_id: uuid.UUID, kind: LikeTarget, target_id: uuid.UUID,
    ) -> ToggleState:
        target = await db.get(LIKE_TARGET_MODELS[kind], target_id)
        if target is None:
            raise NotFoundError(f"{kind.value.capitalize()} not found")

        existing = await db.scalar(
            select(Like).where(
                Like.target_kind == kind,
                Like.target_id == target_id,
                Like.liked_by_id == actor_id,
            ).limit(1)
        )
        if existing is not None:
            await db.delete(existing)
            state = ToggleState.REMOVED
        else:
            db.add(Like(liked_by_id=actor_id, target_kind=kind, target_id=target_id))
            state = ToggleState.ADDED
        await db.flush()

        TOGGLES.labels(f"like_{kind.value}", state.value).inc()
        logger.debug(f"Like {state.value}: {kind.value} {target_id} by {actor_id}")
        return state

    async def toggle_subscription(
        self, db: AsyncSession, subscriber_id: uuid.UUID, channel_id: uuid.UUID,
    ) -> ToggleState:
        if subscriber_id == channel_id:
            raise ValidationFailed("You cannot subscribe to your own channel")
        channel = await db.get(User, channel_id)
        if channel is None:
            raise NotFoundError("Channel does not exist")

        existing = await db.scalar(
            select(Subscription).where(
                Subscription.channel_id == channel_id,
                Subscription.subscriber_id == subscriber_id,
            ).limit(1)
        )
        if existing is not None:
            await db.delete(existing)
            state = ToggleState.REMOVED
        else:
            db.add(Subscription(channel_id=channel_id, subscriber_id=subscriber_id))
            state = ToggleState.ADDED
        await db.flush()

        TOGGLES.labels("subscription", state.value).inc()
        logger.debug(f"Subscription {state.value}: {subscriber_id} -> {channel_id}")
        return state


toggle_service = ToggleService()
