"""
VidTube API — Comment routes.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.api.deps import RequestContext, ensure_owner, get_context, parse_uuid, require_context
from vidtube.core.config import get_settings
from vidtube.core.database import get_db
from vidtube.core.errors import NotFoundError
from vidtube.core.responses import respond
from vidtube.models.models import Comment, Video
from vidtube.schemas.schemas import CommentSchema, CommentView, ContentRequest
from vidtube.services.content.cascade_service import cascade_service
from vidtube.services.views.composer import view_composer
from vidtube.services.views.read_models import video_comments

settings = get_settings()

router = APIRouter(prefix="/comments", tags=["Comments"])


async def _load_comment(db: AsyncSession, comment_id: str) -> Comment:
    comment = await db.get(Comment, parse_uuid(comment_id, "comment ID"))
    if comment is None:
        raise NotFoundError("Comment not found")
    return comment


async def _require_video(db: AsyncSession, video_id: str) -> Video:
    video = await db.get(Video, parse_uuid(video_id, "video ID"))
    if video is None:
        raise NotFoundError("Video not found")
    return video


@router.get("/{video_id}")
async def list_comments(
    video_id: str,
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    ctx: RequestContext = Depends(get_context),
    db: AsyncSession = Depends(get_db),
):
    """Newest-first comments with author, like count and the viewer's like flag."""
    video = await _require_video(db, video_id)
    limit = min(limit or settings.default_page_size, settings.max_page_size)
    docs = await view_composer.run(db, video_comments(str(video.id), ctx.viewer_id, page, limit))
    return respond([CommentView.model_validate(d) for d in docs], "Comments fetched successfully")


@router.post("/{video_id}")
async def add_comment(
    video_id: str,
    payload: ContentRequest,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    video = await _require_video(db, video_id)
    comment = Comment(content=payload.content, video_id=video.id, owner_id=ctx.user.id)
    db.add(comment)
    await db.commit()
    return respond(CommentSchema.model_validate(comment.as_document()), "Comment added successfully", 201)


@router.patch("/c/{comment_id}")
async def update_comment(
    comment_id: str,
    payload: ContentRequest,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    comment = await _load_comment(db, comment_id)
    ensure_owner(comment.owner_id, ctx, "comment")
    comment.content = payload.content
    await db.commit()
    return respond(CommentSchema.model_validate(comment.as_document()), "Comment updated successfully")


@router.delete("/c/{comment_id}")
async def delete_comment(
    comment_id: str,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    comment = await _load_comment(db, comment_id)
    ensure_owner(comment.owner_id, ctx, "comment")
    await cascade_service.delete_comment(db, comment)
    return respond({}, "Comment deleted successfully")
