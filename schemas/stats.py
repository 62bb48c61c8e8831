"""
Run statistics returned by every job
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from models.base import JobStatus


class RunStats(BaseModel):
    """
    Aggregate outcome of one job run.

    Returned by the orchestrator instead of being kept in module state,
    so callers and tests can assert on it directly.
    """
    job_name: str
    status: JobStatus = JobStatus.SUCCESS
    processed: int = 0
    updated: int = 0
    failed: int = 0
    duration_ms: int = 0
    error: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)

    def bump(self, key: str, amount: int = 1) -> None:
        """Increment a named counter in details"""
        self.details[key] = self.details.get(key, 0) + amount

    def finalize(self) -> "RunStats":
        """Derive status from per-item failures"""
        if self.status not in (JobStatus.SKIPPED, JobStatus.FAILED):
            self.status = JobStatus.PARTIAL if self.failed else JobStatus.SUCCESS
        return self
