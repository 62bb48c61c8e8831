"""
README sync: upstream README text for GitHub-hosted projects
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


class ReadmeSyncJob(SyncJobBase):
    job_name = "readme_sync"

    def __init__(self, ttl_hours=None, client=None, request_delay: Optional[float] = None):
        super().__init__(ttl_hours=ttl_hours, client=client)
        self.request_delay = settings.README_REQUEST_DELAY if request_delay is None else request_delay

    def default_ttl_hours(self) -> float:
        return settings.README_SYNC_TTL_HOURS

    async def execute(self, session: AsyncSession, stats: RunStats) -> None:
        loader = CatalogLoader(session)
        result = await session.execute(
            select(Project.id, Project.full_name, Project.upstream_url)
            .where(Project.upstream_provider == "github")
        )
        rows = result.all()

        async with self.http_client() as client:
            forge = ForgeClient(client)

            for row in rows:
                stats.processed += 1
                upstream = parse_upstream_url(row.upstream_url)
                if upstream is None or upstream.provider != "github":
                    continue

                try:
                    readme = await forge.fetch_github_readme(upstream.owner, upstream.repo)
                    if readme is None:
                        stats.bump("unavailable")
                    else:
                        await loader.update_project(
                            row.id,
                            upstream_readme=readme,
                            readme_synced_at=datetime.utcnow(),
                        )
                        stats.updated += 1
                except Exception as e:
                    await self.record_item_failure(session, stats, f"{row.full_name} (id={row.id})", e)

                await asyncio.sleep(self.request_delay)
