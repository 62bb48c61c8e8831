"""
Catalog sync: per-project reconciliation against the COPR API
"""

from typing import List, Optional
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from core.config import settings
from schemas.sources import CoprProjectRecord, CoprPackageRecord, UpstreamInfo
from schemas.stats import RunStats
from pipeline.base import SyncJobBase
from pipeline.extractors.copr_api import CoprClient
from pipeline.loaders.catalog_loader import CatalogLoader
from pipeline.transformers.upstream import parse_upstream_url, extract_upstream_from_texts

logger = logging.getLogger(__name__)


def detect_upstream(record: CoprProjectRecord, packages: List[CoprPackageRecord]) -> Optional[UpstreamInfo]:
    """Upstream repository from homepage, package clone URLs, description, instructions"""
    upstream = parse_upstream_url(record.homepage)
    if upstream:
        return upstream

    for pkg in packages:
        upstream = parse_upstream_url(pkg.clone_url)
        if upstream:
            return upstream

    return extract_upstream_from_texts(
        description=record.description,
        instructions=record.instructions,
    )


class CoprSyncJob(SyncJobBase):
    """
    Walk the paginated project listing and upsert every project with
    its packages, latest build time and detected upstream repository.
    """

    job_name = "copr_sync"

    def __init__(self, ttl_hours=None, client=None, page_delay: Optional[float] = None):
        super().__init__(ttl_hours=ttl_hours, client=client)
        self.page_delay = settings.COPR_PAGE_DELAY if page_delay is None else page_delay

    def default_ttl_hours(self) -> float:
        return settings.COPR_SYNC_TTL_HOURS

    async def execute(self, session: AsyncSession, stats: RunStats) -> None:
        loader = CatalogLoader(session)

        async with self.http_client() as client:
            copr = CoprClient(client)

            async for page in copr.iter_project_pages(page_delay=self.page_delay):
                for record in page:
                    stats.processed += 1
                    try:
                        packages = await copr.list_packages(record.owner, record.name)
                        last_build_at = await copr.latest_build_at(record.owner, record.name)
                        upstream = detect_upstream(record, packages)

                        await loader.save_project(
                            record,
                            packages,
                            upstream=upstream,
                            last_build_at=last_build_at,
                            now=datetime.utcnow(),
                        )
                        stats.updated += 1
                        if upstream:
                            stats.bump(f"upstream_{upstream.provider}")
                    except Exception as e:
                        await self.record_item_failure(
                            session, stats, f"{record.full_name} (copr_id={record.copr_id})", e, "UPSERT"
                        )

                logger.info(f"Synced {stats.updated} projects so far ({stats.failed} failed)")

        await loader.recompute_popularity()
