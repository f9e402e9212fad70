"""
VidTube Cascade Service — deletes that clean up after themselves.

Order for every delete:
  1. delete the primary row and commit (authoritative)
  2. delete dependent rows (likes; for videos also comments and their likes);
     failures are rolled back and logged, the delete still succeeds
  3. release external assets; failures are logged, never raised
"""
from __future__ import annotations

import logging
from typing import List

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.core.errors import InfrastructureError
from vidtube.models.models import Comment, Like, LikeTarget, Tweet, Video
from vidtube.services.media.media_host import MediaHost

logger = logging.getLogger(__name__)


class CascadeService:

    async def delete_video(self, db: AsyncSession, video: Video, media: MediaHost):
        video_id = video.id
        assets = [a.get("asset_id") for a in (video.video_file, video.thumbnail) if a]

        await db.delete(video)
        await db.commit()

        try:
            comment_ids = list(await db.scalars(select(Comment.id).where(Comment.video_id == video_id)))
            await db.execute(delete(Comment).where(Comment.video_id == video_id))
            await self._delete_likes(db, LikeTarget.VIDEO, [video_id])
            await self._delete_likes(db, LikeTarget.COMMENT, comment_ids)
            await db.commit()
            logger.info(f"Deleted video {video_id} with {len(comment_ids)} comments")
        except SQLAlchemyError as e:
            await db.rollback()
            logger.warning(f"Dependent cleanup failed for video {video_id}: {e}")

        await self.release_assets(media, assets)

    async def delete_comment(self, db: AsyncSession, comment: Comment):
        comment_id = comment.id
        await db.delete(comment)
        await db.commit()
        await self._cleanup_likes(db, LikeTarget.COMMENT, comment_id)

    async def delete_tweet(self, db: AsyncSession, tweet: Tweet):
        tweet_id = tweet.id
        await db.delete(tweet)
        await db.commit()
        await self._cleanup_likes(db, LikeTarget.TWEET, tweet_id)

    async def release_assets(self, media: MediaHost, asset_ids: List[str]):
        for asset_id in asset_ids:
            if not asset_id:
                continue
            try:
                await media.delete(asset_id)
            except InfrastructureError as e:
                logger.warning(f"Asset cleanup failed for {asset_id}: {e}")

    async def _cleanup_likes(self, db: AsyncSession, kind: LikeTarget, target_id):
        try:
            await self._delete_likes(db, kind, [target_id])
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.warning(f"Like cleanup failed for {kind.value} {target_id}: {e}")

    @staticmethod
    async def _delete_likes(db: AsyncSession, kind: LikeTarget, target_ids: list):
        if not target_ids:
            return
        await db.execute(
            delete(Like).where(Like.target_kind == kind, Like.target_id.in_(target_ids))
        )


cascade_service = CascadeService()
