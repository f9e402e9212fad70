"""
VidTube API — Tweet routes.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.api.deps import RequestContext, ensure_owner, get_context, parse_uuid, require_context
from vidtube.core.database import get_db
from vidtube.core.errors import NotFoundError
from vidtube.core.responses import respond
from vidtube.models.models import Tweet, User
from vidtube.schemas.schemas import ContentRequest, TweetSchema, TweetView
from vidtube.services.content.cascade_service import cascade_service
from vidtube.services.views.composer import view_composer
from vidtube.services.views.read_models import user_tweets

router = APIRouter(prefix="/tweets", tags=["Tweets"])


async def _load_tweet(db: AsyncSession, tweet_id: str) -> Tweet:
    tweet = await db.get(Tweet, parse_uuid(tweet_id, "tweet ID"))
    if tweet is None:
        raise NotFoundError("Tweet not found")
    return tweet


def _tweet_out(tweet: Tweet) -> TweetSchema:
    return TweetSchema.model_validate(tweet.as_document())


@router.post("")
async def create_tweet(
    payload: ContentRequest,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    tweet = Tweet(content=payload.content, owner_id=ctx.user.id)
    db.add(tweet)
    await db.commit()
    return respond(_tweet_out(tweet), "Tweet created successfully", 201)


@router.get("/user/{user_id}")
async def get_user_tweets(
    user_id: str,
    ctx: RequestContext = Depends(get_context),
    db: AsyncSession = Depends(get_db),
):
    owner = await db.get(User, parse_uuid(user_id, "user ID"))
    if owner is None:
        raise NotFoundError("User does not exist")
    docs = await view_composer.run(db, user_tweets(str(owner.id), ctx.viewer_id))
    return respond([TweetView.model_validate(d) for d in docs], "Tweets fetched successfully")


@router.patch("/{tweet_id}")
async def update_tweet(
    tweet_id: str,
    payload: ContentRequest,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    tweet = await _load_tweet(db, tweet_id)
    ensure_owner(tweet.owner_id, ctx, "tweet")
    tweet.content = payload.content
    await db.commit()
    return respond(_tweet_out(tweet), "Tweet updated successfully")


@router.delete("/{tweet_id}")
async def delete_tweet(
    tweet_id: str,
    ctx: RequestContext = Depends(require_context),
    db: AsyncSession = Depends(get_db),
):
    tweet = await _load_tweet(db, tweet_id)
    ensure_owner(tweet.owner_id, ctx, "tweet")
    await cascade_service.delete_tweet(db, tweet)
    return respond({}, "Tweet deleted successfully")
