from sqlalchemy import JSON
from sqlalchemy.orm import declarative_base
from sqlalchemy.dialects.postgresql import JSONB
import enum

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


# ============================================================================
# ENUMS
# ============================================================================

class ClassificationSource(str, enum.Enum):
    """Tier that produced a category assignment"""
    APPSTREAM = "appstream"
    HEURISTIC = "heuristic"
    LLM = "llm"


class JobStatus(str, enum.Enum):
    """Outcome of one job run"""
    SKIPPED = "skipped"
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
