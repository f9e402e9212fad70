"""
VidTube Media Host — binary assets on an S3-compatible object store (MinIO).

  store(local_path)     → StoredAsset(url, asset_id, duration)
  delete(asset_id)
  store_upload(upload)  → spools an UploadFile to a temp file, stores it and
                          removes the temp file whatever the outcome

boto3 is blocking; every call runs in the default executor.
"""
from __future__ import annotations

import asyncio
import json
import logging
import mimetypes
import os
import shutil
import subprocess
import tempfile
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile
from prometheus_client import Counter

from vidtube.core.config import get_settings
from vidtube.core.errors import MediaHostError

logger = logging.getLogger(__name__)
settings = get_settings()

MEDIA_OPERATIONS = Counter(
    "vidtube_media_operations_total",
    "Media host calls by operation and outcome",
    ["operation", "outcome"],
)


@dataclass
class StoredAsset:
    url: str
    asset_id: str
    duration: float = 0.0

    def as_reference(self) -> Dict[str, str]:
        return {"url": self.url, "asset_id": self.asset_id}


def probe_duration(path: Path) -> float:
    """Container duration in seconds via ffprobe; 0.0 for stills or when unavailable."""
    try:
        probe_out = subprocess.run(
            [
                "ffprobe", "-v", "quiet", "-print_format", "json",
                "-show_format", str(path),
            ],
            capture_output=True, text=True, timeout=30,
        )
        probe = json.loads(probe_out.stdout) if probe_out.returncode == 0 else {}
        return round(float(probe.get("format", {}).get("duration") or 0.0), 3)
    except (OSError, ValueError, subprocess.TimeoutExpired) as e:
        logger.debug(f"ffprobe skipped: {e}")
        return 0.0


def _spool(source, fd: int):
    with os.fdopen(fd, "wb") as fh:
        shutil.copyfileobj(source, fh)


class MediaHost:
    """Thin async wrapper over an S3 bucket."""

    def __init__(self):
        self._client = None

    @property
    def client(self):
        if self._client is None:
            scheme = "https" if settings.minio_secure else "http"
            self._client = boto3.client(
                "s3",
                endpoint_url=f"{scheme}://{settings.minio_endpoint}",
                aws_access_key_id=settings.minio_access_key,
                aws_secret_access_key=settings.minio_secret_key,
                region_name=settings.minio_region,
            )
        return self._client

    def public_url(self, asset_id: str) -> str:
        if settings.media_public_url:
            base = settings.media_public_url.rstrip("/")
        else:
            scheme = "https" if settings.minio_secure else "http"
            base = f"{scheme}://{settings.minio_endpoint}/{settings.minio_bucket}"
        return f"{base}/{asset_id}"

    async def store(self, local_path: Path, content_type: Optional[str] = None) -> StoredAsset:
        asset_id = f"{settings.media_key_prefix}/{uuid.uuid4().hex}{local_path.suffix.lower()}"
        content_type = content_type or mimetypes.guess_type(local_path.name)[0] or "application/octet-stream"
        loop = asyncio.get_running_loop()
        duration = await loop.run_in_executor(None, probe_duration, local_path)

        try:
            await loop.run_in_executor(None, self._upload, local_path, asset_id, content_type)
        except (BotoCoreError, ClientError) as e:
            MEDIA_OPERATIONS.labels("store", "failed").inc()
            logger.error(f"Upload of {local_path.name} to media host failed: {e}")
            raise MediaHostError("File upload to media host failed") from e

        MEDIA_OPERATIONS.labels("store", "ok").inc()
        logger.info(f"Stored asset {asset_id}")
        return StoredAsset(url=self.public_url(asset_id), asset_id=asset_id, duration=duration)

    async def delete(self, asset_id: str):
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._delete, asset_id)
        except (BotoCoreError, ClientError) as e:
            MEDIA_OPERATIONS.labels("delete", "failed").inc()
            raise MediaHostError(f"Could not delete asset {asset_id}") from e
        MEDIA_OPERATIONS.labels("delete", "ok").inc()
        logger.info(f"Deleted asset {asset_id}")

    async def store_upload(self, upload: UploadFile) -> StoredAsset:
        temp_dir = Path(settings.temp_dir)
        temp_dir.mkdir(parents=True, exist_ok=True)
        suffix = Path(upload.filename or "").suffix
        fd, temp_name = tempfile.mkstemp(prefix="vidtube_", suffix=suffix, dir=temp_dir)
        temp_path = Path(temp_name)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, _spool, upload.file, fd)
            return await self.store(temp_path, upload.content_type)
        finally:
            temp_path.unlink(missing_ok=True)

    def _upload(self, local_path: Path, asset_id: str, content_type: str):
        self.client.upload_file(
            str(local_path), settings.minio_bucket, asset_id,
            ExtraArgs={"ContentType": content_type},
        )

    def _delete(self, asset_id: str):
        self.client.delete_object(Bucket=settings.minio_bucket, Key=asset_id)


media_host = MediaHost()


def get_media_host() -> MediaHost:
    return media_host
