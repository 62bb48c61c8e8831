"""
Dump sync: votes, downloads and repo enables from the COPR database dump
"""

from typing import Dict, Optional
from datetime import datetime
from pathlib import Path
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
import asyncio
import logging

from core.config import settings
from models.project import Project
from schemas.sources import DownloadStats
from schemas.stats import RunStats
from pipeline.base import SyncJobBase
from pipeline.extractors.copr_api import CoprClient
from pipeline.extractors.dump_stream import stream_extract_copy_sections
from pipeline.loaders.catalog_loader import CatalogLoader
from pipeline.transformers.dump_parser import parse_copr_score_lines, parse_counter_stat_lines

logger = logging.getLogger(__name__)

SCORE_SECTION = "public.copr_score"
COUNTER_SECTION = "public.counter_stat"
STAGING_FILE_NAME = "copr_dump.gz"


def aggregate_dump(path: str) -> Dict[str, dict]:
    """Stream the dump once and fold both sections"""
    sections = stream_extract_copy_sections(path, [SCORE_SECTION, COUNTER_SECTION])
    return {
        "votes": parse_copr_score_lines(sections[SCORE_SECTION]),
        "downloads": parse_counter_stat_lines(sections[COUNTER_SECTION]),
    }


class DumpSyncJob(SyncJobBase):
    """
    Apply aggregated vote and download counters to existing projects.

    Votes are matched by copr_id, download counters by owner/name. The
    staging file is exclusive to one run: a leftover from a previous run
    is removed before downloading, and the file is removed afterwards.
    """

    job_name = "dump_sync"

    def __init__(self, ttl_hours=None, client=None, staging_dir: Optional[str] = None):
        super().__init__(ttl_hours=ttl_hours, client=client)
        self.staging_path = Path(staging_dir or settings.DUMP_STAGING_DIR) / STAGING_FILE_NAME

    def default_ttl_hours(self) -> float:
        return settings.DUMP_SYNC_TTL_HOURS

    def _clear_staging(self) -> None:
        if self.staging_path.exists():
            self.staging_path.unlink()

    async def execute(self, session: AsyncSession, stats: RunStats) -> None:
        self._clear_staging()
        self.staging_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            async with self.http_client() as client:
                copr = CoprClient(client)
                dump_url = await copr.find_latest_dump_url()
                logger.info(f"Downloading dump: {dump_url}")
                await copr.download_dump(dump_url, str(self.staging_path))

            aggregates = await asyncio.to_thread(aggregate_dump, str(self.staging_path))
        finally:
            self._clear_staging()

        votes: Dict[int, int] = aggregates["votes"]
        downloads: Dict[str, DownloadStats] = aggregates["downloads"]
        stats.details["projects_with_votes"] = len(votes)
        stats.details["projects_with_downloads"] = len(downloads)
        logger.info(f"Parsed {len(votes)} projects with votes, {len(downloads)} with download stats")

        await self.apply_counters(session, stats, votes, downloads)
        await CatalogLoader(session).recompute_popularity()

    async def apply_counters(
        self,
        session: AsyncSession,
        stats: RunStats,
        votes: Dict[int, int],
        downloads: Dict[str, DownloadStats]
    ) -> None:
        """Write aggregates to matching projects, one project per commit"""
        loader = CatalogLoader(session)
        result = await session.execute(select(Project.id, Project.copr_id, Project.full_name))
        rows = result.all()

        for row in rows:
            stats.processed += 1
            values = {}

            if row.copr_id is not None and row.copr_id in votes:
                values["copr_votes"] = votes[row.copr_id]
                stats.bump("votes_updated")

            counters = downloads.get(row.full_name)
            if counters is not None:
                values["copr_downloads"] = counters.downloads
                values["copr_repo_enables"] = counters.repo_enables
                stats.bump("downloads_updated")

            if not values:
                continue

            values["votes_synced_at"] = datetime.utcnow()
            try:
                await loader.update_project(row.id, **values)
                stats.updated += 1
            except Exception as e:
                await self.record_item_failure(session, stats, f"{row.full_name} (id={row.id})", e)
