"""
VidTube API — Healthcheck route.
"""
from __future__ import annotations

from fastapi import APIRouter

from vidtube.core.responses import respond

router = APIRouter(prefix="/healthcheck", tags=["Healthcheck"])


@router.get("")
async def healthcheck():
    return respond({"status": "OK"}, "Health check passed")
