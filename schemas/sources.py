"""
Pydantic schemas for records returned by external sources
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List


def _zero_if_missing(v):
    return 0 if v is None else v


class CoprPackageRecord(BaseModel):
    """One package of a COPR project"""
    name: str
    source_type: Optional[str] = None
    clone_url: Optional[str] = None


class CoprProjectRecord(BaseModel):
    """A project as listed by the COPR API"""
    copr_id: int
    owner: str
    name: str
    full_name: str
    description: Optional[str] = None
    instructions: Optional[str] = None
    homepage: Optional[str] = None
    chroots: List[str] = Field(default_factory=list)
    repo_url: Optional[str] = None


class UpstreamInfo(BaseModel):
    """Upstream forge repository detected from free text"""
    provider: str  # "github" | "gitlab"
    host: str
    owner: str
    repo: str
    url: str


class UpstreamMeta(BaseModel):
    """Forge repository statistics"""
    stars: int = 0
    forks: int = 0
    language: Optional[str] = None
    description: Optional[str] = None
    topics: List[str] = Field(default_factory=list)

    @field_validator("stars", "forks", mode="before")
    @classmethod
    def clean_counts(cls, v):
        return _zero_if_missing(v)

    @field_validator("topics", mode="before")
    @classmethod
    def clean_topics(cls, v):
        if not isinstance(v, list):
            return []
        return [str(t) for t in v if t]


class DiscourseStats(BaseModel):
    """Engagement counters of one discussion thread"""
    likes: int = 0
    views: int = 0
    replies: int = 0

    @field_validator("likes", "views", "replies", mode="before")
    @classmethod
    def clean_counts(cls, v):
        return _zero_if_missing(v)


class DiscourseTopicInfo(DiscourseStats):
    """Discussion thread discovered through embed-URL search"""
    topic_id: int
    slug: Optional[str] = None


class AppStreamEntry(BaseModel):
    """Package name and its FreeDesktop category labels"""
    package_name: str
    categories: List[str]


class DownloadStats(BaseModel):
    """Per-project download counters folded from the bulk export"""
    downloads: int = 0
    repo_enables: int = 0

