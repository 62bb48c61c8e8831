"""
Discourse sync: discussion thread discovery and engagement counters
"""

from typing import Optional
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
import asyncio
import logging

from core.config import settings
from models.project import Project
from schemas.stats import RunStats
from pipeline.base import SyncJobBase
from pipeline.extractors.discourse import DiscourseClient
from pipeline.loaders.catalog_loader import CatalogLoader

logger = logging.getLogger(__name__)


class DiscourseSyncJob(SyncJobBase):
    """
    Projects with a known thread get fresh counters; the rest are looked
    up by the URL of their project page, which the forum embeds.
    """

    job_name = "discourse_sync"

    def __init__(self, ttl_hours=None, client=None, request_delay: Optional[float] = None):
        super().__init__(ttl_hours=ttl_hours, client=client)
        self.request_delay = settings.DISCOURSE_REQUEST_DELAY if request_delay is None else request_delay

    def default_ttl_hours(self) -> float:
        return settings.DISCOURSE_SYNC_TTL_HOURS

    async def _fetch_values(self, discourse: DiscourseClient, row, stats: RunStats) -> Optional[dict]:
        if row.discourse_topic_id:
            topic_stats = await discourse.fetch_topic_stats(row.discourse_topic_id)
            if not topic_stats:
                return None
            stats.bump("refreshed")
            return {
                "discourse_likes": topic_stats.likes,
                "discourse_views": topic_stats.views,
                "discourse_replies": topic_stats.replies,
            }

        topic = await discourse.find_topic_by_embed_url(row.owner, row.name)
        if not topic:
            return None
        stats.bump("discovered")
        return {
            "discourse_topic_id": topic.topic_id,
            "discourse_likes": topic.likes,
            "discourse_views": topic.views,
            "discourse_replies": topic.replies,
        }

    async def execute(self, session: AsyncSession, stats: RunStats) -> None:
        loader = CatalogLoader(session)
        result = await session.execute(
            select(Project.id, Project.owner, Project.name, Project.full_name, Project.discourse_topic_id)
        )
        rows = result.all()

        async with self.http_client() as client:
            discourse = DiscourseClient(client)

            for row in rows:
                stats.processed += 1
                try:
                    values = await self._fetch_values(discourse, row, stats)
                    if values is not None:
                        values["discourse_synced_at"] = datetime.utcnow()
                        await loader.update_project(row.id, **values)
                        stats.updated += 1
                except Exception as e:
                    await self.record_item_failure(session, stats, f"{row.full_name} (id={row.id})", e)

                await asyncio.sleep(self.request_delay)

        logger.info(
            f"Discourse sync: {stats.details.get('discovered', 0)} discovered, "
            f"{stats.details.get('refreshed', 0)} refreshed"
        )
        await loader.recompute_popularity()
