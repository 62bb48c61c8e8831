"""
Application configuration using Pydantic Settings
"""

from pydantic_settings import BaseSettings
from typing import Optional
import tempfile


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Database (required at startup, see core.database)
    DATABASE_URL: Optional[str] = None

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Job freshness windows
    FORCE_SYNC: bool = False
    COPR_SYNC_TTL_HOURS: float = 6
    DUMP_SYNC_TTL_HOURS: float = 24
    STARS_SYNC_TTL_HOURS: float = 12
    README_SYNC_TTL_HOURS: float = 72
    DISCOURSE_SYNC_TTL_HOURS: float = 24
    CATEGORY_SYNC_TTL_HOURS: float = 24
    SYNC_CHECK_INTERVAL_MINUTES: int = 60

    # External endpoints
    COPR_API_BASE: str = "https://copr.fedorainfracloud.org/api_3"
    COPR_WEB_BASE: str = "https://copr.fedorainfracloud.org"
    COPR_DUMP_INDEX_URL: str = "https://copr.fedorainfracloud.org/db_dumps/"
    DISCOURSE_BASE_URL: str = "https://discussion.fedoraproject.org"
    GITHUB_API_BASE: str = "https://api.github.com"
    USER_AGENT: str = "coprhub-sync/1.0 (+https://github.com/coprhub)"
    HTTP_TIMEOUT: float = 30.0

    # Credentials
    GITHUB_TOKEN: Optional[str] = None
    LLM_API_URL: Optional[str] = None
    LLM_API_KEY: Optional[str] = None
    LLM_MODEL: str = "qwen3:8b"
    LLM_CONCURRENCY: int = 5

    # Inter-call delays (seconds)
    COPR_PAGE_DELAY: float = 0.5
    STARS_REQUEST_DELAY: float = 0.1
    README_REQUEST_DELAY: float = 0.1
    DISCOURSE_REQUEST_DELAY: float = 0.2

    # Forge quota back-off
    GITHUB_RATE_LIMIT_LOW_WATER: int = 10
    GITHUB_RATE_LIMIT_FALLBACK_SECONDS: float = 60.0

    # Local storage
    APPSTREAM_CACHE_DIR: str = "data/appstream"
    APPSTREAM_MAX_AGE_DAYS: float = 7
    DUMP_STAGING_DIR: str = tempfile.gettempdir()

    @property
    def llm_enabled(self) -> bool:
        return bool(self.LLM_API_URL and self.LLM_API_KEY)

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
