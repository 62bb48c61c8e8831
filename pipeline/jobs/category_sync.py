"""
Category sync: three-tier classification of new or changed projects
"""

from typing import Dict, List, Optional
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
import logging

from core.config import settings
from models.project import Project, Package
from schemas.classification import ClassificationInput
from schemas.stats import RunStats
from pipeline.base import SyncJobBase
from pipeline.extractors.appstream import AppStreamIndexLoader
from pipeline.loaders.catalog_loader import CatalogLoader
from pipeline.transformers.classifier import build_classifier_chain
from pipeline.transformers.llm_classifier import LlmClassifier

logger = logging.getLogger(__name__)

BATCH_SIZE = 100
PACKAGE_QUERY_BATCH = 1000
PROGRESS_EVERY = 1000


class CategorySyncJob(SyncJobBase):
    """
    Classify every project whose updated_at is newer than its
    category_synced_at (or that was never classified).

    Args:
        appstream_index: Pre-built category index; downloaded when None
        llm: Generative classifier; built from settings when None and
            an endpoint is configured
    """

    job_name = "category_sync"

    def __init__(
        self,
        ttl_hours=None,
        client=None,
        appstream_index: Optional[Dict[str, List[str]]] = None,
        llm: Optional[LlmClassifier] = None
    ):
        super().__init__(ttl_hours=ttl_hours, client=client)
        self.appstream_index = appstream_index
        self.llm = llm

    def default_ttl_hours(self) -> float:
        return settings.CATEGORY_SYNC_TTL_HOURS

    async def select_pending(self, session: AsyncSession) -> List[ClassificationInput]:
        """Projects needing (re)classification, with their package names"""
        result = await session.execute(
            select(
                Project.id,
                Project.owner,
                Project.name,
                Project.description,
                Project.homepage,
                Project.upstream_language,
                Project.upstream_topics,
            )
            .where(or_(
                Project.category_synced_at.is_(None),
                Project.updated_at > Project.category_synced_at,
            ))
            .order_by(Project.id)
        )
        rows = result.all()

        package_names: Dict[int, List[str]] = {}
        project_ids = [row.id for row in rows]
        for i in range(0, len(project_ids), PACKAGE_QUERY_BATCH):
            batch = project_ids[i:i + PACKAGE_QUERY_BATCH]
            pkg_result = await session.execute(
                select(Package.project_id, Package.name)
                .where(Package.project_id.in_(batch))
                .order_by(Package.id)
            )
            for project_id, name in pkg_result.all():
                package_names.setdefault(project_id, []).append(name)

        return [
            ClassificationInput(
                project_id=row.id,
                owner=row.owner,
                name=row.name,
                description=row.description,
                homepage=row.homepage,
                upstream_language=row.upstream_language,
                upstream_topics=row.upstream_topics or [],
                package_names=package_names.get(row.id, []),
            )
            for row in rows
        ]

    async def execute(self, session: AsyncSession, stats: RunStats) -> None:
        loader = CatalogLoader(session)
        slug_to_id = await loader.seed_categories()

        async with self.http_client() as client:
            index = self.appstream_index
            if index is None:
                index = await AppStreamIndexLoader(client).load_index()

            llm = self.llm
            if llm is None and settings.llm_enabled:
                llm = LlmClassifier(
                    client,
                    api_url=settings.LLM_API_URL,
                    api_key=settings.LLM_API_KEY,
                    model=settings.LLM_MODEL,
                )

            chain = build_classifier_chain(index, llm=llm, concurrency=settings.LLM_CONCURRENCY)

            items = await self.select_pending(session)
            logger.info(f"Projects to classify: {len(items)}")
            if not items:
                return

            for key in ("appstream", "heuristic", "llm", "llm_failed"):
                stats.details.setdefault(key, 0)

            for start in range(0, len(items), BATCH_SIZE):
                batch = items[start:start + BATCH_SIZE]
                results, llm_failures = await chain.classify_batch(batch)
                stats.bump("llm_failed", llm_failures)

                for item, classification in zip(batch, results):
                    stats.processed += 1
                    try:
                        await loader.replace_category(
                            item.project_id,
                            slug_to_id.get(classification.slug),
                            classification,
                            now=datetime.utcnow(),
                        )
                        stats.updated += 1
                        stats.bump(classification.tier.value)
                    except Exception as e:
                        await self.record_item_failure(
                            session, stats, f"{item.full_name} (id={item.project_id})", e, "REPLACE"
                        )

                    if stats.processed % PROGRESS_EVERY == 0:
                        logger.info(
                            f"Progress: {stats.processed}/{len(items)} "
                            f"(appstream: {stats.details['appstream']}, "
                            f"heuristic: {stats.details['heuristic']}, llm: {stats.details['llm']})"
                        )

        logger.info(
            f"AppStream: {stats.details['appstream']}, Heuristic: {stats.details['heuristic']}, "
            f"LLM: {stats.details['llm']}, LLM failed: {stats.details['llm_failed']}"
        )
