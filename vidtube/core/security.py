"""
VidTube credential helpers — password hashing and signed session tokens.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt
from passlib.context import CryptContext

from vidtube.core.config import get_settings
from vidtube.core.errors import UnauthorizedError

settings = get_settings()

ACCESS = "access"
REFRESH = "refresh"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def _secret(token_type: str) -> str:
    return settings.access_token_secret if token_type == ACCESS else settings.refresh_token_secret


def _sign(claims: Dict[str, Any], token_type: str, ttl: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        **claims,
        "type": token_type,
        "iat": now,
        "exp": now + ttl,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, _secret(token_type), algorithm=settings.token_algorithm)


def create_access_token(user) -> str:
    return _sign(
        {
            "sub": str(user.id),
            "username": user.username,
            "email": user.email,
            "full_name": user.full_name,
        },
        ACCESS,
        timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_refresh_token(user) -> str:
    return _sign(
        {"sub": str(user.id)},
        REFRESH,
        timedelta(days=settings.refresh_token_expire_days),
    )


def decode_token(token: str, token_type: str = ACCESS) -> Dict[str, Any]:
    """Verify signature, expiry and token type; raise ``UnauthorizedError`` otherwise."""
    try:
        payload = jwt.decode(token, _secret(token_type), algorithms=[settings.token_algorithm])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError(f"{token_type.capitalize()} token has expired")
    except jwt.InvalidTokenError:
        raise UnauthorizedError(f"Invalid {token_type} token")

    if payload.get("type") != token_type or not payload.get("sub"):
        raise UnauthorizedError(f"Invalid {token_type} token")
    return payload
