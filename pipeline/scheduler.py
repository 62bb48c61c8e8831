import logging
from datetime import datetime
from typing import List, Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import async_sessionmaker
from core.config import settings
from pipeline.base import SyncJobBase
from pipeline.runner import SyncRunner, build_default_jobs

logger = logging.getLogger(__name__)


class SyncScheduler:
    """
    One interval job per sync job. Every tick runs the job's TTL gate,
    so the interval only bounds how quickly a stale job is noticed.
    max_instances=1 keeps a slow run from overlapping its next tick.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker,
        jobs: Optional[List[SyncJobBase]] = None,
        interval_minutes: Optional[int] = None
    ):
        self.scheduler = AsyncIOScheduler()
        self.runner = SyncRunner(session_maker)
        self.jobs = jobs if jobs is not None else build_default_jobs()
        self.interval_minutes = interval_minutes or settings.SYNC_CHECK_INTERVAL_MINUTES

    async def run_sync_job(self, job: SyncJobBase):
        """Scheduler callback for one job"""
        logger.info(f"Scheduler: checking {job.job_name}")
        stats = await self.runner.run_job(job)
        if stats.error:
            logger.error(f"Scheduler: {job.job_name} failed - {stats.error}")

    def add_jobs(self, run_immediately: bool = True):
        for job in self.jobs:
            options = {}
            if run_immediately:
                options["next_run_time"] = datetime.now(self.scheduler.timezone)

            self.scheduler.add_job(
                self.run_sync_job,
                trigger=IntervalTrigger(minutes=self.interval_minutes),
                args=[job],
                id=job.job_name,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
                **options
            )

    def start(self, run_immediately: bool = True):
        """Start the scheduler"""
        self.add_jobs(run_immediately=run_immediately)
        self.scheduler.start()
        logger.info(f"Sync Scheduler started ({len(self.jobs)} jobs, every {self.interval_minutes} min)")

    def stop(self):
        self.scheduler.shutdown()
        logger.info("Sync Scheduler stopped")
