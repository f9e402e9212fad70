"""
VidTube API — Playlist routes.

Playlist membership is an ordered set of video ids: adding a present id and
removing an absent one are both no-ops.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.api.deps import RequestContext, ensure_owner, parse_uuid, require_context
from vidtube.core.database import get_db
from vidtube.core.errors import NotFoundError, ValidationFailed
from vidtube.core.responses import respond
from vidtube.models.models import Playlist, User, Video
from vidtube.schemas.schemas import (
    PlaylistCreate,
    PlaylistDetail,
    PlaylistSchema,
    PlaylistSummary,
    PlaylistUpdate,
)
from vidtube.services.views.composer import view_composer
from vidtube.services.views.read_models import playlist_detail, user_playlists

router = APIRouter(prefix="/playlists", tags=["Playlists"])


async def _load_playlist(db: AsyncSession, playlist_id: str) -> Playlist:
    playlist = await db.get(Playlist, parse_uuid(playlist_id, "playlist ID"))
    if playlist is None:
        raise NotFoundError("Playlist not found")
    return playlist


def _playlist_out(playlist: Playlist) -> PlaylistSchema:
    return PlaylistSchema.model_validate(playlist.as_document())


@router.post("")
async def create_playlist(
    payload: PlaylistCreate,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    playlist = Playlist(
        name=payload.name,
        description=payload.description,
        owner_id=ctx.user.id,
        videos=[],
    )
    db.add(playlist)
    await db.commit()
    return respond(_playlist_out(playlist), "Playlist created successfully", 201)


@router.get("/user/{user_id}")
async def get_user_playlists(user_id: str, db: AsyncSession = Depends(get_db)):
    owner = await db.get(User, parse_uuid(user_id, "user ID"))
    if owner is None:
        raise NotFoundError("User does not exist")
    docs = await view_composer.run(db, user_playlists(str(owner.id)))
    return respond([PlaylistSummary.model_validate(d) for d in docs], "User playlists fetched successfully")


@router.get("/{playlist_id}")
async def get_playlist(playlist_id: str, db: AsyncSession = Depends(get_db)):
    pid = parse_uuid(playlist_id, "playlist ID")
    doc = await view_composer.first(db, playlist_detail(str(pid)))
    if doc is None:
        raise NotFoundError("Playlist not found")
    return respond(PlaylistDetail.model_validate(doc), "Playlist fetched successfully")


@router.patch("/{playlist_id}")
async def update_playlist(
    playlist_id: str,
    payload: PlaylistUpdate,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    if not (payload.name or payload.description):
        raise ValidationFailed("Provide a name or description to update")
    playlist = await _load_playlist(db, playlist_id)
    ensure_owner(playlist.owner_id, ctx, "playlist")

    if payload.name:
        playlist.name = payload.name
    if payload.description:
        playlist.description = payload.description
    await db.commit()
    return respond(_playlist_out(playlist), "Playlist updated successfully")


@router.delete("/{playlist_id}")
async def delete_playlist(
    playlist_id: str,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    playlist = await _load_playlist(db, playlist_id)
    ensure_owner(playlist.owner_id, ctx, "playlist")
    await db.delete(playlist)
    await db.commit()
    return respond({}, "Playlist deleted successfully")


@router.patch("/add/{video_id}/{playlist_id}")
async def add_video_to_playlist(
    video_id: str,
    playlist_id: str,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    playlist = await _load_playlist(db, playlist_id)
    ensure_owner(playlist.owner_id, ctx, "playlist")
    video = await db.get(Video, parse_uuid(video_id, "video ID"))
    if video is None:
        raise NotFoundError("Video not found")

    members = list(playlist.videos or [])
    if str(video.id) not in members:
        playlist.videos = [*members, str(video.id)]
        await db.commit()
    return respond(_playlist_out(playlist), "Video added to playlist successfully")


@router.patch("/remove/{video_id}/{playlist_id}")
async def remove_video_from_playlist(
    video_id: str,
    playlist_id: str,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    """Remove a video id from the playlist; the video itself need not exist."""
    vid = str(parse_uuid(video_id, "video ID"))
    playlist = await _load_playlist(db, playlist_id)
    ensure_owner(playlist.owner_id, ctx, "playlist")

    members = list(playlist.videos or [])
    if vid in members:
        playlist.videos = [v for v in members if v != vid]
        await db.commit()
    return respond(_playlist_out(playlist), "Video removed from playlist successfully")
