from sqlalchemy import Column, String, DateTime, Integer, Enum
from datetime import datetime
from models.base import Base, JobStatus, JSONType


class SyncJob(Base):
    """
    Completion record for one named job.

    Purpose:
    - Sole state consulted by the TTL gate
    - Last run duration and statistics for observability

    Design:
    - One row per job name
    - Written only after a run finishes (fully or with per-item failures),
      never mid-run; a job that fails outright leaves its row untouched
    """
    __tablename__ = "sync_jobs"

    job_name = Column(String(100), primary_key=True)
    last_completed_at = Column(DateTime, nullable=False)
    duration_ms = Column(Integer, nullable=False, default=0)
    last_status = Column(Enum(JobStatus), nullable=True)
    last_stats = Column(JSONType, nullable=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)
