"""
VidTube API — Video routes.
"""
from __future__ import annotations

import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.api.deps import (
    RequestContext,
    ensure_owner,
    get_context,
    parse_uuid,
    require_context,
    single_file,
)
from vidtube.core.config import get_settings
from vidtube.core.database import get_db
from vidtube.core.errors import NotFoundError, ValidationFailed
from vidtube.core.responses import respond
from vidtube.models.models import Video
from vidtube.schemas.schemas import VideoDetail, VideoPage, VideoSchema, VideoSummary
from vidtube.services.content.cascade_service import cascade_service
from vidtube.services.media.media_host import MediaHost, get_media_host
from vidtube.services.views.composer import view_composer
from vidtube.services.views.read_models import VIDEO_SORT_FIELDS, video_detail, video_listing

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/videos", tags=["Videos"])


async def _load_video(db: AsyncSession, video_id: str) -> Video:
    video = await db.get(Video, parse_uuid(video_id, "video ID"))
    if video is None:
        raise NotFoundError("Video not found")
    return video


def _video_out(video: Video) -> VideoSchema:
    return VideoSchema.model_validate(video.as_document())


@router.get("")
async def list_videos(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    query: Optional[str] = None,
    user_id: Optional[str] = Query(None, alias="userId"),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_type: str = Query("desc", alias="sortType"),
    db: AsyncSession = Depends(get_db),
):
    """Paginated published videos, optionally by channel and free-text query."""
    limit = min(limit or settings.default_page_size, settings.max_page_size)
    if sort_by not in VIDEO_SORT_FIELDS:
        raise ValidationFailed(f"sortBy must be one of {', '.join(VIDEO_SORT_FIELDS)}")
    if sort_type not in ("asc", "desc"):
        raise ValidationFailed("sortType must be 'asc' or 'desc'")
    owner_id = str(parse_uuid(user_id, "user ID")) if user_id else None

    pipeline = video_listing(
        page, limit,
        owner_id=owner_id,
        query=query.strip() if query else None,
        sort_by=VIDEO_SORT_FIELDS[sort_by],
        descending=sort_type == "desc",
    )
    docs = await view_composer.run(db, pipeline)
    total = await view_composer.count(db, pipeline)

    result = VideoPage(
        videos=[VideoSummary.model_validate(d) for d in docs],
        page=page,
        limit=limit,
        total_videos=total,
        total_pages=math.ceil(total / limit) if total else 0,
    )
    return respond(result, "Videos fetched successfully")


@router.post("", dependencies=[Depends(single_file("videoFile", "thumbnail"))])
async def publish_video(
    title: str = Form(...),
    description: str = Form(...),
    video_file: Optional[UploadFile] = File(None, alias="videoFile"),
    thumbnail: Optional[UploadFile] = File(None),
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
    media: MediaHost = Depends(get_media_host),
):
    title, description = title.strip(), description.strip()
    if not title or not description:
        raise ValidationFailed("Title and description are required")
    if video_file is None or not video_file.filename:
        raise ValidationFailed("Video file is required")
    if thumbnail is None or not thumbnail.filename:
        raise ValidationFailed("Thumbnail is required")

    stored_video = await media.store_upload(video_file)
    stored_thumbnail = await media.store_upload(thumbnail)

    video = Video(
        video_file=stored_video.as_reference(),
        thumbnail=stored_thumbnail.as_reference(),
        title=title,
        description=description,
        duration=stored_video.duration,
        views=0,
        is_published=True,
        owner_id=ctx.user.id,
    )
    db.add(video)
    await db.commit()
    logger.info(f"Video {video.id} published by {ctx.user.username}")
    return respond(_video_out(video), "Video uploaded successfully", 201)


@router.get("/{video_id}")
async def get_video(
    video_id: str,
    ctx: RequestContext = Depends(get_context),
    db: AsyncSession = Depends(get_db),
):
    """Enriched video; counts a view and records it in the viewer's history."""
    vid = parse_uuid(video_id, "video ID")
    doc = await view_composer.first(db, video_detail(str(vid), ctx.viewer_id))
    if doc is None or (not doc["is_published"] and doc["owner_id"] != ctx.viewer_id):
        raise NotFoundError("Video not found")

    await db.execute(update(Video).where(Video.id == vid).values(views=Video.views + 1))
    doc["views"] += 1

    if ctx.user is not None:
        history = list(ctx.user.watch_history or [])
        if str(vid) not in history:
            ctx.user.watch_history = [*history, str(vid)]
    await db.commit()

    return respond(VideoDetail.model_validate(doc), "Video fetched successfully")


@router.patch("/{video_id}", dependencies=[Depends(single_file("thumbnail"))])
async def update_video(
    video_id: str,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    thumbnail: Optional[UploadFile] = File(None),
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
    media: MediaHost = Depends(get_media_host),
):
    video = await _load_video(db, video_id)
    ensure_owner(video.owner_id, ctx, "video")

    title = title.strip() if title else None
    description = description.strip() if description else None
    has_thumbnail = thumbnail is not None and bool(thumbnail.filename)
    if not (title or description or has_thumbnail):
        raise ValidationFailed("Provide a title, description or thumbnail to update")

    previous_thumbnail = None
    if title:
        video.title = title
    if description:
        video.description = description
    if has_thumbnail:
        previous_thumbnail = (video.thumbnail or {}).get("asset_id")
        video.thumbnail = (await media.store_upload(thumbnail)).as_reference()
    await db.commit()

    if previous_thumbnail:
        await cascade_service.release_assets(media, [previous_thumbnail])
    return respond(_video_out(video), "Video updated successfully")


@router.delete("/{video_id}")
async def delete_video(
    video_id: str,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
    media: MediaHost = Depends(get_media_host),
):
    video = await _load_video(db, video_id)
    ensure_owner(video.owner_id, ctx, "video")
    await cascade_service.delete_video(db, video, media)
    return respond({}, "Video deleted successfully")


@router.patch("/toggle/publish/{video_id}")
async def toggle_publish_status(
    video_id: str,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    video = await _load_video(db, video_id)
    ensure_owner(video.owner_id, ctx, "video")
    video.is_published = not video.is_published
    await db.commit()
    return respond({"isPublished": video.is_published}, "Publish status toggled successfully")
