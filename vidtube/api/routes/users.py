"""
VidTube API — User, session and channel routes.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.api.deps import RequestContext, get_context, require_context, single_file
from vidtube.core.config import get_settings
from vidtube.core.database import get_db
from vidtube.core.errors import ConflictError, NotFoundError, ValidationFailed
from vidtube.core.responses import respond
from vidtube.core.security import hash_password, verify_password
from vidtube.models.models import User
from vidtube.schemas.schemas import (
    AccountUpdate,
    ChangePasswordRequest,
    ChannelProfile,
    LoginRequest,
    LoginResult,
    RefreshRequest,
    TokenPair,
    UserSchema,
    VideoSummary,
)
from vidtube.services.auth.session_service import session_service
from vidtube.services.content.cascade_service import cascade_service
from vidtube.services.media.media_host import MediaHost, get_media_host
from vidtube.services.views.composer import view_composer
from vidtube.services.views.read_models import channel_profile, watch_history

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/users", tags=["Users"])


def _user_out(user: User) -> UserSchema:
    return UserSchema.model_validate(user.as_document())


def _set_session_cookies(response: JSONResponse, tokens: TokenPair):
    for name, value in (
        (settings.access_cookie_name, tokens.access_token),
        (settings.refresh_cookie_name, tokens.refresh_token),
    ):
        response.set_cookie(
            name, value,
            httponly=True, secure=settings.cookie_secure, samesite=settings.cookie_samesite,
        )


def _clear_session_cookies(response: JSONResponse):
    for name in (settings.access_cookie_name, settings.refresh_cookie_name):
        response.delete_cookie(
            name, httponly=True, secure=settings.cookie_secure, samesite=settings.cookie_samesite,
        )


# ── Registration & session ───────────────────────────────────────────────

@router.post("/register", dependencies=[Depends(single_file("avatar", "coverImage"))])
async def register_user(
    username: str = Form(...),
    email: str = Form(...),
    full_name: str = Form(..., alias="fullName"),
    password: str = Form(...),
    avatar: Optional[UploadFile] = File(None),
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    db: AsyncSession = Depends(get_db),
    media: MediaHost = Depends(get_media_host),
):
    """Create an account; the avatar is required, the cover image optional."""
    username, email, full_name = username.strip().lower(), email.strip(), full_name.strip()
    if not all((username, email, full_name, password.strip())):
        raise ValidationFailed("All fields are required")
    if avatar is None or not avatar.filename:
        raise ValidationFailed("Avatar file is required")

    existing = await db.scalar(
        select(User.id).where(or_(User.username == username, User.email == email)).limit(1)
    )
    if existing is not None:
        raise ConflictError("User with email or username already exists")

    avatar_asset = await media.store_upload(avatar)
    cover_asset = None
    if cover_image is not None and cover_image.filename:
        cover_asset = await media.store_upload(cover_image)

    user = User(
        username=username,
        email=email,
        full_name=full_name,
        password=hash_password(password),
        avatar=avatar_asset.as_reference(),
        cover_image=cover_asset.as_reference() if cover_asset else None,
        watch_history=[],
    )
    db.add(user)
    await db.commit()
    logger.info(f"Registered user {username}")
    return respond(_user_out(user), "User registered successfully", 201)


@router.post("/login")
async def login_user(payload: LoginRequest, db: AsyncSession = Depends(get_db)):
    user, tokens = await session_service.login(
        db, payload.password, username=payload.username, email=payload.email,
    )
    await db.commit()
    result = LoginResult(
        user=_user_out(user),
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
    )
    response = respond(result, "User logged in successfully")
    _set_session_cookies(response, tokens)
    return response


@router.post("/logout")
async def logout_user(
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    await session_service.revoke(db, ctx.user)
    await db.commit()
    response = respond({}, "User logged out")
    _clear_session_cookies(response)
    return response


@router.post("/refresh-token")
async def refresh_access_token(
    request: Request,
    payload: Optional[RefreshRequest] = None,
    db: AsyncSession = Depends(get_db),
):
    """Rotate the session using the refresh cookie or a ``refreshToken`` body field."""
    presented = request.cookies.get(settings.refresh_cookie_name)
    if not presented and payload is not None:
        presented = payload.refresh_token
    _, tokens = await session_service.refresh(db, presented)
    await db.commit()
    response = respond(tokens, "Access token refreshed")
    _set_session_cookies(response, tokens)
    return response


# ── Account ──────────────────────────────────────────────────────────────

@router.post("/change-password")
async def change_password(
    payload: ChangePasswordRequest,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    if not verify_password(payload.old_password, ctx.user.password):
        raise ValidationFailed("Invalid old password")
    ctx.user.password = hash_password(payload.new_password)
    await db.commit()
    return respond({}, "Password changed successfully")


@router.get("/current-user")
async def current_user(ctx: RequestContext = Depends(require_context)):
    return respond(_user_out(ctx.user), "Current user fetched successfully")


@router.patch("/update-account")
async def update_account(
    payload: AccountUpdate,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    taken = await db.scalar(
        select(User.id).where(User.email == payload.email, User.id != ctx.user.id).limit(1)
    )
    if taken is not None:
        raise ConflictError("Email is already in use")

    ctx.user.full_name = payload.full_name
    ctx.user.email = payload.email
    await db.commit()
    return respond(_user_out(ctx.user), "Account details updated successfully")


async def _replace_image(
    db: AsyncSession, media: MediaHost, user: User, field: str, upload: UploadFile,
) -> User:
    if upload is None or not upload.filename:
        raise ValidationFailed(f"{field} file is missing")
    previous = getattr(user, field)
    asset = await media.store_upload(upload)
    setattr(user, field, asset.as_reference())
    await db.commit()
    if previous:
        await cascade_service.release_assets(media, [previous.get("asset_id")])
    return user


@router.patch("/avatar", dependencies=[Depends(single_file("avatar"))])
async def update_avatar(
    avatar: Optional[UploadFile] = File(None),
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
    media: MediaHost = Depends(get_media_host),
):
    user = await _replace_image(db, media, ctx.user, "avatar", avatar)
    return respond(_user_out(user), "Avatar image updated successfully")


@router.patch("/cover-image", dependencies=[Depends(single_file("coverImage"))])
async def update_cover_image(
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
    media: MediaHost = Depends(get_media_host),
):
    user = await _replace_image(db, media, ctx.user, "cover_image", cover_image)
    return respond(_user_out(user), "Cover image updated successfully")


# ── Channel views ────────────────────────────────────────────────────────

@router.get("/c/{username}")
async def get_channel_profile(
    username: str,
    ctx: RequestContext = Depends(get_context),
    db: AsyncSession = Depends(get_db),
):
    """Public channel page with subscriber counts and the viewer's subscription flag."""
    if not username.strip():
        raise ValidationFailed("Username is missing")
    doc = await view_composer.first(db, channel_profile(username.strip(), ctx.viewer_id))
    if doc is None:
        raise NotFoundError("Channel does not exist")
    return respond(ChannelProfile.model_validate(doc), "User channel fetched successfully")


@router.get("/history")
async def get_watch_history(
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    doc = await view_composer.first(db, watch_history(ctx.viewer_id))
    history = [VideoSummary.model_validate(v) for v in (doc or {}).get("history", [])]
    return respond(history, "Watch history fetched successfully")
