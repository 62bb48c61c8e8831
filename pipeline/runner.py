"""
Sync Runner - runs scheduled jobs independently of each other.

Each job gets its own session, so a job that fails (or leaves its
session in a bad state) cannot affect the next one. The runner returns
the RunStats of every job instead of keeping run state around.
"""

from typing import Iterable, List, Optional
from sqlalchemy.ext.asyncio import async_sessionmaker
import logging
import time

from models.base import JobStatus
from schemas.stats import RunStats
from pipeline.base import SyncJobBase
from pipeline.jobs.copr_sync import CoprSyncJob
from pipeline.jobs.dump_sync import DumpSyncJob
from pipeline.jobs.stars_sync import StarsSyncJob
from pipeline.jobs.readme_sync import ReadmeSyncJob
from pipeline.jobs.discourse_sync import DiscourseSyncJob
from pipeline.jobs.category_sync import CategorySyncJob

logger = logging.getLogger(__name__)


def build_default_jobs() -> List[SyncJobBase]:
    """
    Jobs in dependency order: catalog first, then signals, then
    classification of whatever changed.
    """
    return [
        CoprSyncJob(),
        DumpSyncJob(),
        StarsSyncJob(),
        ReadmeSyncJob(),
        DiscourseSyncJob(),
        CategorySyncJob(),
    ]


class SyncRunner:
    """
    Orchestrator for sync jobs.

    Responsibilities:
    - One session per job run
    - Isolate job failures (a failing job never stops the others)
    - Collect RunStats for every job
    """

    def __init__(self, session_maker: async_sessionmaker):
        self.session_maker = session_maker

    async def run_job(self, job: SyncJobBase, force: bool = False) -> RunStats:
        """Run one job in a fresh session; never raises"""
        started = time.monotonic()
        try:
            async with self.session_maker() as session:
                return await job.run(session, force=force)
        except Exception as e:
            logger.exception(f"Unexpected error running {job.job_name}")
            return RunStats(
                job_name=job.job_name,
                status=JobStatus.FAILED,
                error=str(e),
                duration_ms=int((time.monotonic() - started) * 1000),
            )

    async def run_all(
        self,
        jobs: Optional[Iterable[SyncJobBase]] = None,
        force: bool = False
    ) -> List[RunStats]:
        """
        Run jobs sequentially.

        Returns:
            RunStats per job, in run order
        """
        jobs = list(jobs) if jobs is not None else build_default_jobs()
        results = []

        for job in jobs:
            stats = await self.run_job(job, force=force)
            results.append(stats)

        summary = ", ".join(f"{s.job_name}={s.status.value}" for s in results)
        logger.info(f"Sync run complete: {summary}")
        return results
