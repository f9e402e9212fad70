"""Tweet endpoints."""

import uuid

from sqlalchemy import func, select

from vidtube.models.models import Like


async def test_create_and_list_tweets(api):
    alice = await api.account("alice")
    bob = await api.account("bob")
    tweet = await api.tweet(alice, "first post")
    await api.post(f"/likes/toggle/t/{tweet['id']}", bob)

    anonymous = (await api.get(f"/tweets/user/{alice.id}")).json()["data"]
    as_bob = (await api.get(f"/tweets/user/{alice.id}", bob)).json()["data"]

    assert anonymous[0]["content"] == "first post"
    assert anonymous[0]["owner"]["username"] == "alice"
    assert anonymous[0]["totalLikes"] == 1
    assert anonymous[0]["isLiked"] is False
    assert as_bob[0]["isLiked"] is True


async def test_tweet_listing_for_user_without_tweets(api):
    alice = await api.account("alice")
    resp = await api.get(f"/tweets/user/{alice.id}")
    assert resp.status_code == 200
    assert resp.json()["data"] == []
    assert (await api.get(f"/tweets/user/{uuid.uuid4()}")).status_code == 404


async def test_empty_content_is_rejected(api):
    alice = await api.account("alice")
    resp = await api.post("/tweets", alice, json={"content": "   "})
    assert resp.status_code == 400


async def test_update_returns_updated_tweet(api):
    alice = await api.account("alice")
    bob = await api.account("bob")
    tweet = await api.tweet(alice)

    resp = await api.patch(f"/tweets/{tweet['id']}", alice, json={"content": "edited"})
    assert resp.status_code == 200
    assert resp.json()["data"]["content"] == "edited"
    assert resp.json()["data"]["id"] == tweet["id"]

    foreign = await api.patch(f"/tweets/{tweet['id']}", bob, json={"content": "hijack"})
    assert foreign.status_code == 403


async def test_delete_tweet_cascades_likes(api, db):
    alice = await api.account("alice")
    tweet = await api.tweet(alice)
    await api.post(f"/likes/toggle/t/{tweet['id']}", alice)

    resp = await api.delete(f"/tweets/{tweet['id']}", alice)

    assert resp.status_code == 200
    assert await db.scalar(select(func.count()).select_from(Like)) == 0
    assert (await api.delete(f"/tweets/{tweet['id']}", alice)).status_code == 404
