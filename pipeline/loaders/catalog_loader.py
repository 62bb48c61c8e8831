"""
Catalog store writes.

Every write here is one unit of failure: it commits on success, so one
item's failure never rolls back another item's write.
"""

from typing import Dict, Iterable, List, Optional
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete
from models.project import Project, Package
from models.category import Category, ProjectCategory
from schemas.sources import CoprProjectRecord, CoprPackageRecord, UpstreamInfo
from schemas.classification import Classification
from pipeline.transformers.category_mapping import CATEGORIES
from pipeline.transformers.popularity import compute_stored_popularity
import logging

logger = logging.getLogger(__name__)


class CatalogLoader:
    """
    Idempotent writes to the catalog tables.

    Ensures:
    - Projects are matched by copr_id first, then by owner/name
    - Package lists and category assignments are replaced, never merged
    - Each public method commits its own transaction
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def find_project(self, copr_id: Optional[int], owner: str, name: str) -> Optional[Project]:
        if copr_id is not None:
            result = await self.db.execute(select(Project).where(Project.copr_id == copr_id))
            project = result.scalar_one_or_none()
            if project is not None:
                return project

        result = await self.db.execute(
            select(Project).where(Project.owner == owner, Project.name == name)
        )
        return result.scalar_one_or_none()

    async def _package_names(self, project_id: int) -> List[str]:
        result = await self.db.execute(
            select(Package.name).where(Package.project_id == project_id).order_by(Package.id)
        )
        return list(result.scalars().all())

    async def save_project(
        self,
        record: CoprProjectRecord,
        packages: List[CoprPackageRecord],
        upstream: Optional[UpstreamInfo] = None,
        last_build_at: Optional[datetime] = None,
        now: Optional[datetime] = None
    ) -> Project:
        """
        Upsert one project and replace its packages.

        updated_at moves only when a classification input changed, so
        unchanged projects are not re-classified on every sync.
        """
        now = now or datetime.utcnow()
        project = await self.find_project(record.copr_id, record.owner, record.name)
        package_names = [p.name for p in packages]

        if project is None:
            project = Project(
                owner=record.owner,
                name=record.name,
                created_at=now,
                updated_at=now,
            )
            self.db.add(project)
            changed = True
        else:
            changed = (
                project.name != record.name
                or project.description != record.description
                or project.homepage != record.homepage
                or await self._package_names(project.id) != package_names
            )

        project.copr_id = record.copr_id
        project.owner = record.owner
        project.name = record.name
        project.full_name = record.full_name
        project.description = record.description
        project.instructions = record.instructions
        project.homepage = record.homepage
        project.chroots = record.chroots
        project.repo_url = record.repo_url
        project.upstream_url = upstream.url if upstream else None
        project.upstream_provider = upstream.provider if upstream else None
        if last_build_at is not None:
            project.last_build_at = last_build_at
        project.last_synced_at = now
        if changed:
            project.updated_at = now

        await self.db.flush()
        await self._replace_packages(project.id, packages)
        await self.db.commit()
        return project

    async def _replace_packages(self, project_id: int, packages: Iterable[CoprPackageRecord]) -> None:
        await self.db.execute(delete(Package).where(Package.project_id == project_id))
        for pkg in packages:
            self.db.add(Package(
                project_id=project_id,
                name=pkg.name,
                source_type=pkg.source_type,
                source_url=pkg.clone_url,
            ))

    async def update_project(self, project_id: int, **values) -> None:
        """Set columns on one project and commit"""
        await self.db.execute(
            update(Project).where(Project.id == project_id).values(**values)
        )
        await self.db.commit()

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def seed_categories(self) -> Dict[str, int]:
        """
        Insert missing catalog categories.

        Returns:
            slug -> category id for every category in the store
        """
        result = await self.db.execute(select(Category))
        existing = {c.slug: c for c in result.scalars().all()}

        for cat in CATEGORIES:
            if cat["slug"] not in existing:
                category = Category(slug=cat["slug"], name=cat["name"])
                self.db.add(category)
                existing[cat["slug"]] = category

        await self.db.commit()
        return {slug: c.id for slug, c in existing.items()}

    async def replace_category(
        self,
        project_id: int,
        category_id: Optional[int],
        classification: Classification,
        now: Optional[datetime] = None
    ) -> None:
        """
        Atomically replace a project's category assignment and stamp
        category_synced_at.
        """
        now = now or datetime.utcnow()
        await self.db.execute(delete(ProjectCategory).where(ProjectCategory.project_id == project_id))

        if category_id is not None:
            self.db.add(ProjectCategory(
                project_id=project_id,
                category_id=category_id,
                source=classification.tier,
                confidence=classification.confidence,
                assigned_at=now,
            ))

        await self.db.execute(
            update(Project).where(Project.id == project_id).values(category_synced_at=now)
        )
        await self.db.commit()

    # ------------------------------------------------------------------
    # Popularity
    # ------------------------------------------------------------------

    async def recompute_popularity(self, now: Optional[datetime] = None) -> int:
        """
        Recompute popularity_score for every project in one pass.

        Returns:
            Number of projects whose score changed
        """
        now = now or datetime.utcnow()
        result = await self.db.execute(
            select(
                Project.id,
                Project.upstream_stars,
                Project.copr_votes,
                Project.copr_downloads,
                Project.copr_repo_enables,
                Project.discourse_likes,
                Project.discourse_replies,
                Project.discourse_views,
                Project.last_build_at,
                Project.popularity_score,
            )
        )

        changes = []
        for row in result.all():
            score = compute_stored_popularity(
                stars=row.upstream_stars,
                votes=row.copr_votes,
                downloads=row.copr_downloads,
                repo_enables=row.copr_repo_enables,
                discourse_likes=row.discourse_likes,
                discourse_replies=row.discourse_replies,
                discourse_views=row.discourse_views,
                last_build_at=row.last_build_at,
                now=now,
            )
            if score != row.popularity_score:
                changes.append({"id": row.id, "popularity_score": score})

        if changes:
            await self.db.execute(update(Project), changes)
        await self.db.commit()

        logger.info(f"Popularity recomputed: {len(changes)} scores changed")
        return len(changes)
