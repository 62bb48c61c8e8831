"""
Script to run sync jobs once
"""

import argparse
import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.database import create_engine_from_settings, create_session_maker
from core.exceptions import ConfigurationError
from core.logging import setup_logging
from models.base import JobStatus
from pipeline.runner import SyncRunner, build_default_jobs

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    jobs = [job.job_name for job in build_default_jobs()]
    parser = argparse.ArgumentParser(description="Run catalog sync jobs once")
    parser.add_argument("--force", action="store_true", help="Ignore job TTLs")
    parser.add_argument(
        "--job",
        action="append",
        choices=jobs,
        help="Job to run (repeatable, default: all)",
    )
    return parser.parse_args(argv)


async def run_sync(job_names=None, force=False) -> int:
    """Run the selected jobs; returns a process exit code"""
    try:
        engine = create_engine_from_settings()
    except ConfigurationError as e:
        logger.error(str(e))
        return 2

    try:
        jobs = build_default_jobs()
        if job_names:
            jobs = [job for job in jobs if job.job_name in job_names]

        runner = SyncRunner(create_session_maker(engine))
        results = await runner.run_all(jobs, force=force)

        for stats in results:
            logger.info(
                f"{stats.job_name}: {stats.status.value} "
                f"processed={stats.processed} updated={stats.updated} "
                f"failed={stats.failed} duration={stats.duration_ms}ms"
            )

        if any(stats.status == JobStatus.FAILED for stats in results):
            return 1
        return 0
    finally:
        await engine.dispose()


if __name__ == "__main__":
    args = parse_args()
    setup_logging()
    sys.exit(asyncio.run(run_sync(args.job, force=args.force)))
