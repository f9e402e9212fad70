"""
VidTube API — Channel dashboard routes.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.api.deps import RequestContext, require_context
from vidtube.core.database import get_db
from vidtube.core.responses import respond
from vidtube.schemas.schemas import ChannelStats, ChannelVideo
from vidtube.services.views.composer import view_composer
from vidtube.services.views.read_models import channel_stats, channel_videos

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/stats")
async def get_channel_stats(
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    """Subscriber, video, view and like totals for the caller's channel."""
    doc = await view_composer.first(db, channel_stats(ctx.viewer_id))
    return respond(ChannelStats.model_validate(doc or {}), "Channel stats fetched successfully")


@router.get("/videos")
async def get_channel_videos(
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    docs = await view_composer.run(db, channel_videos(ctx.viewer_id))
    return respond([ChannelVideo.model_validate(d) for d in docs], "Channel videos fetched successfully")
