"""Envelope shapes and the top-level error boundary."""

import pytest

from vidtube.core import errors
from vidtube.main import app
from vidtube.services.media.media_host import get_media_host

REGISTER_FORM = {"username": "alice", "email": "a@x.com", "fullName": "Alice", "password": "secret1"}
AVATAR = {"avatar": ("avatar.png", b"png", "image/png")}


@pytest.fixture
def broken_media():
    def explode():
        raise RuntimeError("media host exploded")

    app.dependency_overrides[get_media_host] = explode


async def test_healthcheck_envelope(api):
    resp = await api.get("/healthcheck")
    assert resp.status_code == 200
    assert resp.json() == {
        "statusCode": 200,
        "data": {"status": "OK"},
        "message": "Health check passed",
        "success": True,
    }


async def test_service_endpoints(client):
    assert (await client.get("/health")).json() == {"status": "healthy"}
    root = (await client.get("/")).json()
    assert root["api_prefix"] == "/api/v1"


async def test_metrics_are_exposed(client):
    resp = await client.get("/metrics/")
    assert resp.status_code == 200
    assert "vidtube_toggle_operations_total" in resp.text


async def test_unknown_route_uses_failure_envelope(client):
    resp = await client.get("/api/v1/nothing-here")
    assert resp.status_code == 404
    assert resp.json()["success"] is False
    assert resp.json()["status"] == 404


async def test_request_validation_maps_to_400(api):
    alice = await api.account("alice")
    resp = await api.post("/tweets", alice, json={})
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert "content" in body["message"]


async def test_unexpected_exception_is_500_without_stack(api, broken_media):
    resp = await api.client.post("/api/v1/users/register", data=REGISTER_FORM, files=AVATAR)

    assert resp.status_code == 500
    assert resp.json() == {
        "success": False,
        "status": 500,
        "message": "Internal server error",
        "stack": None,
    }


async def test_stack_is_exposed_only_when_enabled(api, broken_media, monkeypatch):
    monkeypatch.setattr(errors.settings, "expose_error_stack", True)

    resp = await api.client.post("/api/v1/users/register", data=REGISTER_FORM, files=AVATAR)

    assert resp.status_code == 500
    assert "media host exploded" in resp.json()["stack"]


def test_typed_failures_carry_status():
    assert errors.ValidationFailed().status_code == 400
    assert errors.UnauthorizedError().status_code == 401
    assert errors.ForbiddenError().status_code == 403
    assert errors.NotFoundError("gone").message == "gone"
    assert errors.ConflictError().status_code == 409
    assert errors.StoreError().status_code == 500
    assert isinstance(errors.MediaHostError(), errors.InfrastructureError)
    assert errors.ApiError("teapot", 418).status_code == 418
