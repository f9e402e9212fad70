"""
VidTube success envelope: ``{statusCode, data, message, success: true}``.
"""
from __future__ import annotations

from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def respond(data: Any = None, message: str = "OK", status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "statusCode": status_code,
            "data": jsonable_encoder(data if data is not None else {}),
            "message": message,
            "success": status_code < 400,
        },
    )
