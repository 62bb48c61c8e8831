"""
Three-tier category classifier.

Tiers are tried in order and the first one that yields a slug wins:

1. AppStreamTier - cross-reference package names against the
   third-party category index
2. HeuristicTier - ordered keyword/regex rules
3. Generative classifier - only for items the local tiers left
   unresolved, dispatched with bounded concurrency

Whatever is still unresolved (classifier absent or failed) falls back
to "utilities" tagged as heuristic-sourced.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Tuple
import asyncio
import logging

from models.base import ClassificationSource
from schemas.classification import Classification, ClassificationInput
from pipeline.transformers.category_mapping import map_freedesktop_categories, FALLBACK_SLUG
from pipeline.transformers.heuristics import classify_by_heuristics
from pipeline.transformers.llm_classifier import LlmClassifier

logger = logging.getLogger(__name__)

FALLBACK = Classification(tier=ClassificationSource.HEURISTIC, slug=FALLBACK_SLUG, confidence="low")


class ClassificationTier(ABC):
    """One local stage of the chain"""

    tier: ClassificationSource

    @abstractmethod
    def classify(self, item: ClassificationInput) -> Optional[Classification]:
        pass


class AppStreamTier(ClassificationTier):
    """Look up the item's own name and sub-package names in the category index"""

    tier = ClassificationSource.APPSTREAM

    def __init__(self, index: Dict[str, List[str]]):
        self.index = index

    def candidate_names(self, item: ClassificationInput) -> List[str]:
        names = [item.name]
        for pkg_name in item.package_names:
            if pkg_name not in names:
                names.append(pkg_name)
        return names

    def classify(self, item: ClassificationInput) -> Optional[Classification]:
        for pkg_name in self.candidate_names(item):
            labels = self.index.get(pkg_name)
            if not labels:
                continue
            slug = map_freedesktop_categories(labels)
            if slug:
                return Classification(tier=self.tier, slug=slug, confidence="high")
        return None


class HeuristicTier(ClassificationTier):
    tier = ClassificationSource.HEURISTIC

    def classify(self, item: ClassificationInput) -> Optional[Classification]:
        slug = classify_by_heuristics(item)
        if slug:
            return Classification(tier=self.tier, slug=slug, confidence="medium")
        return None


class ClassifierChain:
    """
    Ordered chain of classification tiers.

    Args:
        tiers: Local tiers, tried in order
        llm: Generative classifier, None when no endpoint is configured
        concurrency: Maximum generative requests in flight
    """

    def __init__(
        self,
        tiers: Sequence[ClassificationTier],
        llm: Optional[LlmClassifier] = None,
        concurrency: int = 5
    ):
        self.tiers = list(tiers)
        self.llm = llm
        self.concurrency = max(1, concurrency)

    def classify_local(self, item: ClassificationInput) -> Optional[Classification]:
        """Run the local tiers only"""
        for tier in self.tiers:
            result = tier.classify(item)
            if result is not None:
                return result
        return None

    async def _classify_remote(
        self,
        items: List[ClassificationInput]
    ) -> List[Optional[Classification]]:
        """
        Send items to the generative classifier, at most `concurrency`
        at a time. A failed item yields None without affecting the others.
        """
        semaphore = asyncio.Semaphore(self.concurrency)

        async def classify_one(item: ClassificationInput) -> Classification:
            async with semaphore:
                return await self.llm.classify(item)

        outcomes = await asyncio.gather(
            *(classify_one(item) for item in items),
            return_exceptions=True,
        )

        results: List[Optional[Classification]] = []
        for item, outcome in zip(items, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning(f"Classifier failed for {item.full_name} (id={item.project_id}): {outcome}")
                results.append(None)
            else:
                results.append(outcome)
        return results

    async def classify_batch(
        self,
        items: Sequence[ClassificationInput]
    ) -> Tuple[List[Classification], int]:
        """
        Classify a batch of items.

        Returns:
            (one Classification per item in input order, generative failures)
        """
        results: List[Optional[Classification]] = [self.classify_local(item) for item in items]
        failures = 0

        pending = [idx for idx, result in enumerate(results) if result is None]
        if pending and self.llm is not None:
            remote = await self._classify_remote([items[idx] for idx in pending])
            for idx, outcome in zip(pending, remote):
                if outcome is None:
                    failures += 1
                results[idx] = outcome

        return [result or FALLBACK for result in results], failures


def build_classifier_chain(
    appstream_index: Dict[str, List[str]],
    llm: Optional[LlmClassifier] = None,
    concurrency: int = 5
) -> ClassifierChain:
    """Chain with the standard tier order"""
    return ClassifierChain(
        tiers=[AppStreamTier(appstream_index), HeuristicTier()],
        llm=llm,
        concurrency=concurrency,
    )
