"""
Long-running sync worker driven by APScheduler
"""

import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.database import create_engine_from_settings, create_session_maker
from core.logging import setup_logging
from pipeline.scheduler import SyncScheduler

logger = logging.getLogger(__name__)


async def main():
    # Fails fast before any job is scheduled
    engine = create_engine_from_settings()
    scheduler = SyncScheduler(create_session_maker(engine))

    logger.info(
        f"Sync worker starting (environment={settings.ENVIRONMENT}, "
        f"check interval={scheduler.interval_minutes} min)"
    )
    scheduler.start()

    try:
        await asyncio.Event().wait()
    finally:
        scheduler.stop()
        await engine.dispose()


if __name__ == "__main__":
    setup_logging()
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Sync worker stopped")
