"""
Classifier input and result schemas
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Literal
from models.base import ClassificationSource

Confidence = Literal["high", "medium", "low"]


class ClassificationInput(BaseModel):
    """Project metadata consulted by the classification tiers"""
    project_id: Optional[int] = None
    owner: str
    name: str
    description: Optional[str] = None
    homepage: Optional[str] = None
    upstream_language: Optional[str] = None
    upstream_topics: List[str] = Field(default_factory=list)
    package_names: List[str] = Field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


class Classification(BaseModel):
    """Tagged result of the tier chain: which tier, which slug, how sure"""
    tier: ClassificationSource
    slug: str
    confidence: Confidence = "high"

    model_config = ConfigDict(frozen=True)
