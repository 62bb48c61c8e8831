from sqlalchemy import Column, BigInteger, Integer, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from models.base import Base, JSONType


class Project(Base):
    """
    A cataloged COPR project.

    Identity:
    - copr_id: stable external id, unique when known, never reassigned
    - owner/name: human-readable pair, unique together (full_name mirrors it)

    Signal families and their sync stamps:
    - upstream stars/forks/language/topics -> stars_synced_at
    - copr votes/downloads/repo enables    -> votes_synced_at
    - upstream README                      -> readme_synced_at
    - category assignment                  -> category_synced_at
    - discussion likes/views/replies       -> discourse_synced_at

    updated_at is set explicitly by writes that change classification
    inputs; the classifier revisits a project when updated_at is newer
    than category_synced_at.
    """
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    copr_id = Column(Integer, unique=True, nullable=True)

    # Identity
    owner = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    full_name = Column(String(512), unique=True, nullable=False)

    # Descriptive text
    description = Column(Text, nullable=True)
    instructions = Column(Text, nullable=True)
    homepage = Column(String(2048), nullable=True)
    chroots = Column(JSONType, nullable=True)
    repo_url = Column(String(2048), nullable=True)

    # Upstream repository
    upstream_url = Column(String(2048), nullable=True)
    upstream_provider = Column(String(20), nullable=True)  # "github", "gitlab"
    upstream_stars = Column(Integer, default=0, nullable=False)
    upstream_forks = Column(Integer, default=0, nullable=False)
    upstream_description = Column(Text, nullable=True)
    upstream_language = Column(String(100), nullable=True)
    upstream_topics = Column(JSONType, nullable=True)
    upstream_readme = Column(Text, nullable=True)

    # COPR signals
    copr_votes = Column(Integer, default=0, nullable=False)
    copr_downloads = Column(BigInteger, default=0, nullable=False)
    copr_repo_enables = Column(BigInteger, default=0, nullable=False)
    last_build_at = Column(DateTime, nullable=True)

    # Discussion signals
    discourse_topic_id = Column(Integer, nullable=True)
    discourse_likes = Column(Integer, default=0, nullable=False)
    discourse_views = Column(Integer, default=0, nullable=False)
    discourse_replies = Column(Integer, default=0, nullable=False)

    # Derived
    popularity_score = Column(Integer, default=0, nullable=False, index=True)

    # Sync stamps
    stars_synced_at = Column(DateTime, nullable=True)
    votes_synced_at = Column(DateTime, nullable=True)
    readme_synced_at = Column(DateTime, nullable=True)
    category_synced_at = Column(DateTime, nullable=True)
    discourse_synced_at = Column(DateTime, nullable=True)
    last_synced_at = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Relationships
    packages = relationship("Package", back_populates="project", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_projects_owner_name", "owner", "name", unique=True),
        Index("idx_projects_owner", "owner"),
        Index("idx_projects_updated_at", "updated_at"),
        Index("idx_projects_upstream_stars", "upstream_stars"),
    )


class Package(Base):
    """A source package built inside a project"""
    __tablename__ = "packages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    source_type = Column(String(50), nullable=True)
    source_url = Column(String(2048), nullable=True)

    project = relationship("Project", back_populates="packages")
