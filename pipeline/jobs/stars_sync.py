"""
Stars sync: upstream forge repository stats
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
from pipeline.extractors.forge import ForgeClient
from pipeline.loaders.catalog_loader import CatalogLoader
from pipeline.transformers.upstream import parse_upstream_url

logger = logging.getLogger(__name__)


class StarsSyncJob(SyncJobBase):
    """
    Refresh stars, forks, language, description and topics for every
    project with a known upstream repository.

    Language and topics feed the heuristic classifier, so a change in
    either moves updated_at and queues the project for re-classification.
    """

    job_name = "stars_sync"

    def __init__(self, ttl_hours=None, client=None, request_delay: Optional[float] = None):
        super().__init__(ttl_hours=ttl_hours, client=client)
        self.request_delay = settings.STARS_REQUEST_DELAY if request_delay is None else request_delay

    def default_ttl_hours(self) -> float:
        return settings.STARS_SYNC_TTL_HOURS

    async def execute(self, session: AsyncSession, stats: RunStats) -> None:
        loader = CatalogLoader(session)
        result = await session.execute(
            select(
                Project.id,
                Project.full_name,
                Project.upstream_url,
                Project.upstream_language,
                Project.upstream_topics,
            ).where(Project.upstream_url.isnot(None))
        )
        rows = result.all()
        logger.info(f"Projects with upstream: {len(rows)}")

        async with self.http_client() as client:
            forge = ForgeClient(client)

            for row in rows:
                stats.processed += 1
                upstream = parse_upstream_url(row.upstream_url)
                if upstream is None:
                    stats.bump("unparsable_upstream")
                    continue

                try:
                    meta = await forge.fetch_stats(upstream)
                    if meta is None:
                        stats.bump("unavailable")
                    else:
                        now = datetime.utcnow()
                        values = {
                            "upstream_stars": meta.stars,
                            "upstream_forks": meta.forks,
                            "upstream_language": meta.language,
                            "upstream_description": meta.description,
                            "upstream_topics": meta.topics,
                            "stars_synced_at": now,
                        }
                        if meta.language != row.upstream_language or meta.topics != (row.upstream_topics or []):
                            values["updated_at"] = now

                        await loader.update_project(row.id, **values)
                        stats.updated += 1
                except Exception as e:
                    await self.record_item_failure(session, stats, f"{row.full_name} (id={row.id})", e)

                await asyncio.sleep(self.request_delay)

        await loader.recompute_popularity()
