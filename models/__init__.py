"""
SQLAlchemy ORM models for database tables.

This package defines the catalog schema the sync pipeline reads and writes:

Models:
    base: Base declarative class and shared enums (ClassificationSource, JobStatus)
    project: Cataloged projects (items) and their packages
    category: Category catalog and the one-per-project assignment
    sync_job: One completion record per named job (consulted by the TTL gate)

Usage:
    from models.project import Project, Package
    from models.category import Category, ProjectCategory
    from models.sync_job import SyncJob

Relationships:
    - Project → Package (one-to-many, replaced on every catalog sync)
    - Project → ProjectCategory (one-to-one, replaced on every classification)
    - Category → ProjectCategory (one-to-many)
"""

__all__ = [
    "Base",
    "ClassificationSource",
    "JobStatus",
    "Project",
    "Package",
    "Category",
    "ProjectCategory",
    "SyncJob",
]
