"""
VidTube API — shared request dependencies (auth gate, id parsing, ownership).
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile as StarletteUploadFile

from vidtube.core.config import get_settings
from vidtube.core.database import get_db
from vidtube.core.errors import ForbiddenError, UnauthorizedError, ValidationFailed
from vidtube.models.models import User
from vidtube.services.auth.session_service import session_service

logger = logging.getLogger(__name__)
settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class RequestContext:
    """Identity of the caller; ``user`` is None for anonymous requests."""

    user: Optional[User] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def viewer_id(self) -> Optional[str]:
        return str(self.user.id) if self.user is not None else None


def _presented_token(
    request: Request, credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    token = request.cookies.get(settings.access_cookie_name)
    if not token and credentials is not None:
        token = credentials.credentials
    return token or None


async def get_context(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> RequestContext:
    """Optional auth: a missing or unusable credential reads as anonymous."""
    token = _presented_token(request, credentials)
    if not token:
        return RequestContext()
    try:
        return RequestContext(user=await session_service.authenticate(db, token))
    except UnauthorizedError as e:
        logger.debug(f"Treating request as anonymous: {e.message}")
        return RequestContext()


async def require_context(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> RequestContext:
    token = _presented_token(request, credentials)
    if not token:
        raise UnauthorizedError("Unauthorized request")
    return RequestContext(user=await session_service.authenticate(db, token))


def parse_uuid(raw: str, label: str = "ID") -> uuid.UUID:
    try:
        return uuid.UUID(raw)
    except ValueError:
        raise ValidationFailed(f"Invalid {label} format")


def ensure_owner(owner_id: uuid.UUID, ctx: RequestContext, noun: str = "resource"):
    if ctx.user is None or owner_id != ctx.user.id:
        raise ForbiddenError(f"You are not allowed to modify this {noun}")


def single_file(*fields: str):
    """Reject multipart requests that carry more than one file under a field."""

    async def check(request: Request):
        form = await request.form()
        for field in fields:
            files = [v for v in form.getlist(field) if isinstance(v, StarletteUploadFile)]
            if len(files) > 1:
                raise ValidationFailed(f"Only one file is accepted for '{field}'")

    return check
