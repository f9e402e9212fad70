import os
import tempfile
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

os.environ.setdefault("VIDTUBE_DATABASE_DSN", "sqlite+aiosqlite://")
os.environ.setdefault("VIDTUBE_TEMP_DIR", str(Path(tempfile.gettempdir()) / "vidtube-tests"))

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import vidtube.models.models  # noqa: E402,F401
from vidtube.core.database import Base, get_db  # noqa: E402
from vidtube.core.errors import MediaHostError  # noqa: E402
from vidtube.main import app  # noqa: E402
from vidtube.services.media.media_host import StoredAsset, get_media_host  # noqa: E402

API = "/api/v1"


class FakeMediaHost:
    """In-memory media host that records what was stored and released."""

    def __init__(self):
        self.stored: List[str] = []
        self.deleted: List[str] = []
        self.fail_stores = False
        self.fail_deletes = False

    async def store_upload(self, upload) -> StoredAsset:
        if self.fail_stores:
            raise MediaHostError("File upload to media host failed")
        await upload.read()
        asset_id = f"uploads/{uuid.uuid4().hex}{Path(upload.filename or '').suffix}"
        self.stored.append(asset_id)
        duration = 12.5 if (upload.content_type or "").startswith("video/") else 0.0
        return StoredAsset(url=f"http://media.test/{asset_id}", asset_id=asset_id, duration=duration)

    async def delete(self, asset_id: str):
        if self.fail_deletes:
            raise MediaHostError(f"Could not delete asset {asset_id}")
        self.deleted.append(asset_id)


@dataclass
class Account:
    id: str
    username: str
    password: str
    access_token: str
    refresh_token: str
    headers: Dict[str, str] = field(default_factory=dict)


class VidTubeApi:
    """Scenario helper around the ASGI test client."""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def register(self, username: str, email: str = None, password: str = "secret1", cover: bool = False):
        files = {"avatar": ("avatar.png", b"\x89PNG avatar", "image/png")}
        if cover:
            files["coverImage"] = ("cover.png", b"\x89PNG cover", "image/png")
        data = {
            "username": username,
            "email": email or f"{username}@x.com",
            "fullName": username.title(),
            "password": password,
        }
        return await self.client.post(f"{API}/users/register", data=data, files=files)

    async def login(self, username: str, password: str = "secret1"):
        resp = await self.client.post(f"{API}/users/login", json={"username": username, "password": password})
        # cookies are Secure and the test transport is plain http; authenticate with headers
        self.client.cookies.clear()
        return resp

    async def account(self, username: str, password: str = "secret1") -> Account:
        registered = await self.register(username, password=password)
        assert registered.status_code == 201, registered.text
        resp = await self.login(username, password)
        assert resp.status_code == 200, resp.text
        data = resp.json()["data"]
        return Account(
            id=data["user"]["id"],
            username=username,
            password=password,
            access_token=data["accessToken"],
            refresh_token=data["refreshToken"],
            headers={"Authorization": f"Bearer {data['accessToken']}"},
        )

    async def upload_video(self, owner: Account, title: str = "First clip") -> dict:
        resp = await self.client.post(
            f"{API}/videos",
            data={"title": title, "description": f"{title} description"},
            files={
                "videoFile": ("clip.mp4", b"fake video bytes", "video/mp4"),
                "thumbnail": ("thumb.jpg", b"fake jpeg bytes", "image/jpeg"),
            },
            headers=owner.headers,
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    async def comment(self, author: Account, video_id: str, content: str = "Nice video") -> dict:
        resp = await self.client.post(
            f"{API}/comments/{video_id}", json={"content": content}, headers=author.headers,
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    async def tweet(self, author: Account, content: str = "Hello world") -> dict:
        resp = await self.client.post(f"{API}/tweets", json={"content": content}, headers=author.headers)
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    async def get(self, path: str, account: Account = None, **kwargs):
        return await self.client.get(f"{API}{path}", headers=account.headers if account else None, **kwargs)

    async def post(self, path: str, account: Account = None, **kwargs):
        return await self.client.post(f"{API}{path}", headers=account.headers if account else None, **kwargs)

    async def patch(self, path: str, account: Account = None, **kwargs):
        return await self.client.patch(f"{API}{path}", headers=account.headers if account else None, **kwargs)

    async def delete(self, path: str, account: Account = None, **kwargs):
        return await self.client.delete(f"{API}{path}", headers=account.headers if account else None, **kwargs)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def media():
    return FakeMediaHost()


@pytest.fixture
async def client(session_factory, media):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_media_host] = lambda: media
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def api(client):
    return VidTubeApi(client)
