from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey
from datetime import datetime
from models.base import Base, ClassificationSource


class Category(Base):
    """
    Fixed category catalog.

    Seeded idempotently on every category sync; slugs are stable
    identifiers and are never renamed.
    """
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String(50), unique=True, nullable=False)
    name = Column(String(100), nullable=False)


class ProjectCategory(Base):
    """
    The single category assigned to a project.

    project_id is the primary key, so a project holds at most one row.
    Rows are deleted and reinserted on every re-classification, never
    partially updated.
    """
    __tablename__ = "project_categories"

    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True)
    source = Column(Enum(ClassificationSource), nullable=False)
    confidence = Column(String(10), nullable=True)
    assigned_at = Column(DateTime, nullable=False, default=datetime.utcnow)
