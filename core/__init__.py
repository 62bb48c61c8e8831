"""
Core utilities and configuration for the COPR catalog sync pipeline.

This package provides foundational components used throughout the pipeline:

Modules:
    config: Application configuration and environment variable management
    database: Database engine and session factory
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration and utilities

Usage:
    from core.config import settings
    from core.database import create_engine_from_settings, create_session_maker
    from core.exceptions import ConfigurationError, SourceError
    from core.logging import setup_logging

Example:
    # Initialize logging
    setup_logging()

    # Fails fast when DATABASE_URL is not configured
    engine = create_engine_from_settings()
    session_maker = create_session_maker(engine)
    async with session_maker() as session:
        pass
"""

__all__ = [
    "settings",
    "create_engine_from_settings",
    "create_session_maker",
    "setup_logging",
    # Exceptions
    "SyncError",
    "ConfigurationError",
    "SourceError",
    "DumpUnavailableError",
    "ClassifierError",
    "RateLimitError",
    "LoadError",
]
