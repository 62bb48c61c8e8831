"""
Abstract base class for sync jobs with Sync Job Record management
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Optional, AsyncIterator
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from models.sync_job import SyncJob
from models.base import JobStatus
from schemas.stats import RunStats
from pipeline.ttl import should_skip_sync
from core.config import settings
from core.exceptions import LoadError
import httpx
import logging
import time

logger = logging.getLogger(__name__)

MAX_ERROR_DETAILS = 50


class SyncJobBase(ABC):
    """
    Abstract base class for all scheduled jobs.

    Responsibilities:
    - TTL gate before any work
    - Timing and RunStats bookkeeping
    - Sync Job Record upsert once the body finishes

    Subclasses set job_name and implement execute(). Per-item failures
    are handled inside execute() and counted on stats; anything that
    escapes execute() fails the whole job and leaves the record untouched.
    """

    job_name: str = ""

    def __init__(
        self,
        ttl_hours: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.ttl_hours = ttl_hours if ttl_hours is not None else self.default_ttl_hours()
        self._client = client

    def default_ttl_hours(self) -> float:
        return 24.0

    @abstractmethod
    async def execute(self, session: AsyncSession, stats: RunStats) -> None:
        """
        Run the job body.

        Args:
            session: Database session owned by this job run
            stats: Run statistics to update in place
        """
        pass

    @asynccontextmanager
    async def http_client(self) -> AsyncIterator[httpx.AsyncClient]:
        """Yield the injected client, or a fresh one closed on exit"""
        if self._client is not None:
            yield self._client
            return

        async with httpx.AsyncClient(
            timeout=settings.HTTP_TIMEOUT,
            headers={"User-Agent": settings.USER_AGENT},
            follow_redirects=True
        ) as client:
            yield client

    async def record_item_failure(
        self,
        session: AsyncSession,
        stats: RunStats,
        item: str,
        error: Exception,
        operation: str = "UPDATE"
    ) -> None:
        """
        Roll back the failed item, count it and keep its error context.

        Args:
            session: Session whose pending work belongs to the failed item
            stats: Run statistics to update
            item: Human-readable item identity (owner/name and id)
            error: The exception raised while processing the item
            operation: Kind of write that failed
        """
        await session.rollback()
        stats.failed += 1

        load_error = error if isinstance(error, LoadError) else LoadError(
            f"Failed to process {item}",
            context={"job": self.job_name, "item": item, "operation": operation},
            original_exception=error
        )
        errors = stats.details.setdefault("errors", [])
        if len(errors) < MAX_ERROR_DETAILS:
            errors.append(load_error.to_dict())

        logger.error(
            f"{self.job_name}: {item} failed: {error}",
            extra={"error_context": load_error.to_dict()}
        )

    async def get_job_record(self, session: AsyncSession) -> Optional[SyncJob]:
        """Retrieve the Sync Job Record for this job"""
        result = await session.execute(
            select(SyncJob).where(SyncJob.job_name == self.job_name)
        )
        return result.scalar_one_or_none()

    async def record_completion(self, session: AsyncSession, stats: RunStats) -> SyncJob:
        """Create or update the Sync Job Record"""
        record = await self.get_job_record(session)
        now = datetime.utcnow()
        snapshot = stats.model_dump(mode="json")

        if record is None:
            record = SyncJob(
                job_name=self.job_name,
                last_completed_at=now,
                duration_ms=stats.duration_ms,
                last_status=stats.status,
                last_stats=snapshot,
                updated_at=now
            )
            session.add(record)
        else:
            record.last_completed_at = now
            record.duration_ms = stats.duration_ms
            record.last_status = stats.status
            record.last_stats = snapshot
            record.updated_at = now

        await session.commit()
        return record

    async def run(self, session: AsyncSession, force: bool = False) -> RunStats:
        """
        Execute the job if its data is stale.

        Args:
            session: Database session
            force: Ignore the TTL gate

        Returns:
            RunStats for this run (status skipped, success, partial or failed)
        """
        record = await self.get_job_record(session)
        last_completed_at = record.last_completed_at if record else None

        if should_skip_sync(last_completed_at, self.ttl_hours, force or settings.FORCE_SYNC):
            logger.info(
                f"Skipping {self.job_name}: last completed at {last_completed_at}, "
                f"TTL {self.ttl_hours}h"
            )
            return RunStats(job_name=self.job_name, status=JobStatus.SKIPPED)

        logger.info(f"Starting {self.job_name}")
        stats = RunStats(job_name=self.job_name)
        started = time.monotonic()

        try:
            await self.execute(session, stats)
        except Exception as e:
            await session.rollback()
            stats.status = JobStatus.FAILED
            stats.error = str(e)
            stats.duration_ms = int((time.monotonic() - started) * 1000)
            logger.error(f"{self.job_name} failed after {stats.duration_ms}ms: {e}")
            return stats

        stats.duration_ms = int((time.monotonic() - started) * 1000)
        stats.finalize()
        await self.record_completion(session, stats)

        logger.info(
            f"{self.job_name} completed in {stats.duration_ms}ms. "
            f"Processed: {stats.processed}, Updated: {stats.updated}, Failed: {stats.failed}"
        )
        return stats
