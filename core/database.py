"""
Database engine and session management with SQLAlchemy async
"""

from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from core.config import settings
from core.exceptions import ConfigurationError
import logging

logger = logging.getLogger(__name__)


def create_engine_from_settings(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Create the async engine shared by every job.

    Raises:
        ConfigurationError: If no connection string is configured
    """
    url = database_url or settings.DATABASE_URL
    if not url:
        raise ConfigurationError(
            "DATABASE_URL is required",
            context={"setting": "DATABASE_URL"}
        )

    return create_async_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        future=True
    )


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker:
    """Create session factory bound to the engine"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False
    )
