"""
VidTube API — Like routes.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.api.deps import RequestContext, parse_uuid, require_context
from vidtube.core.database import get_db
from vidtube.core.responses import respond
from vidtube.models.models import LikeTarget
from vidtube.schemas.schemas import LikedVideo
from vidtube.services.engagement.toggle_service import ToggleState, toggle_service
from vidtube.services.views.composer import view_composer
from vidtube.services.views.read_models import liked_videos

router = APIRouter(prefix="/likes", tags=["Likes"])


async def _toggle(db: AsyncSession, ctx: RequestContext, kind: LikeTarget, raw_id: str):
    noun = kind.value.lower()
    target_id = parse_uuid(raw_id, f"{noun} ID")
    state = await toggle_service.toggle_like(db, ctx.user.id, kind, target_id)
    await db.commit()

    liked = state is ToggleState.ADDED
    verb = "liked" if liked else "unliked"
    return respond({"isLiked": liked}, f"{noun.capitalize()} {verb} successfully")


@router.post("/toggle/v/{video_id}")
async def toggle_video_like(
    video_id: str,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    return await _toggle(db, ctx, LikeTarget.VIDEO, video_id)


@router.post("/toggle/c/{comment_id}")
async def toggle_comment_like(
    comment_id: str,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    return await _toggle(db, ctx, LikeTarget.COMMENT, comment_id)


@router.post("/toggle/t/{tweet_id}")
async def toggle_tweet_like(
    tweet_id: str,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    return await _toggle(db, ctx, LikeTarget.TWEET, tweet_id)


@router.get("/videos")
async def get_liked_videos(
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    """Videos the caller has liked, newest like first."""
    docs = await view_composer.run(db, liked_videos(ctx.viewer_id))
    # a like can outlive its video until the cascade has run
    liked = [LikedVideo.model_validate(d) for d in docs if d.get("video")]
    return respond(liked, "Liked videos fetched successfully")
