"""
VidTube Session Service — credential and session lifecycle.

  anonymous ──login──▶ authenticated ──refresh──▶ refreshed ──logout──▶ anonymous

A user holds at most one active refresh token: issuing a pair overwrites it,
logout clears it, and presenting any other refresh token fails closed.
"""
from __future__ import annotations

import logging
import uuid
from typing import Optional, Tuple

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.core.errors import NotFoundError, UnauthorizedError, ValidationFailed
from vidtube.core.security import (
    ACCESS,
    REFRESH,
    create_access_token,
    create_refresh_token,
    decode_token,
    verify_password,
)
from vidtube.models.models import User
from vidtube.schemas.schemas import TokenPair

logger = logging.getLogger(__name__)


class SessionService:

    async def login(
        self,
        db: AsyncSession,
        password: Optional[str],
        username: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Tuple[User, TokenPair]:
        if not (username or email):
            raise ValidationFailed("username or email is required")
        if not password:
            raise ValidationFailed("password is required")

        conditions = []
        if username:
            conditions.append(User.username == username.lower())
        if email:
            conditions.append(User.email == email)
        user = await db.scalar(select(User).where(or_(*conditions)))
        if not user:
            raise NotFoundError("User does not exist")
        if not verify_password(password, user.password):
            raise UnauthorizedError("Invalid user credentials")

        tokens = await self.issue(db, user)
        logger.info(f"User {user.username} logged in")
        return user, tokens

    async def issue(self, db: AsyncSession, user: User) -> TokenPair:
        """Sign a fresh pair and make its refresh token the only valid one."""
        tokens = TokenPair(
            access_token=create_access_token(user),
            refresh_token=create_refresh_token(user),
        )
        user.refresh_token = tokens.refresh_token
        await db.flush()
        return tokens

    async def refresh(self, db: AsyncSession, presented: Optional[str]) -> Tuple[User, TokenPair]:
        if not presented:
            raise UnauthorizedError("Unauthorized request")

        payload = decode_token(presented, REFRESH)
        user = await self._load(db, payload["sub"])
        if user is None or user.refresh_token != presented:
            raise UnauthorizedError("Refresh token is expired or used")
        return user, await self.issue(db, user)

    async def revoke(self, db: AsyncSession, user: User):
        user.refresh_token = None
        await db.flush()
        logger.info(f"User {user.username} logged out")

    async def authenticate(self, db: AsyncSession, token: str) -> User:
        """Resolve an access token to its user."""
        payload = decode_token(token, ACCESS)
        user = await self._load(db, payload["sub"])
        if user is None:
            raise UnauthorizedError("Invalid access token")
        return user

    @staticmethod
    async def _load(db: AsyncSession, user_id: str) -> Optional[User]:
        try:
            return await db.get(User, uuid.UUID(user_id))
        except ValueError:
            return None


session_service = SessionService()
