import asyncio
import logging
import sys
import os

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.database import create_engine_from_settings, create_session_maker
from core.logging import setup_logging
from models.base import Base
# Import all models to ensure they are registered
from models.project import Project, Package
from models.category import Category, ProjectCategory
from models.sync_job import SyncJob
from pipeline.loaders.catalog_loader import CatalogLoader

logger = logging.getLogger(__name__)


async def init_database():
    logger.info("Connecting to database...")
    engine = create_engine_from_settings()

    async with engine.begin() as conn:
        logger.info("Creating tables...")
        # Create all tables defined in models
        await conn.run_sync(Base.metadata.create_all)
        logger.info("Tables created successfully.")

    async with create_session_maker(engine)() as session:
        slugs = await CatalogLoader(session).seed_categories()
        logger.info(f"Seeded {len(slugs)} categories.")

    await engine.dispose()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(init_database())
