"""
Pydantic schemas for data validation and serialization.

This package defines the records exchanged between pipeline stages:

Schemas:
    sources: Records returned by the external metadata fetchers
    classification: Classifier input and the tagged tier result
    stats: Per-job run statistics returned by the orchestrator

Usage:
    from schemas.sources import UpstreamMeta, DiscourseStats
    from schemas.classification import Classification
    from schemas.stats import RunStats

Validation:
    Fetchers build these models straight from third-party JSON, so
    missing or null counters are coerced to 0 and missing lists to [].
"""

__all__ = [
    "CoprProjectRecord",
    "CoprPackageRecord",
    "UpstreamInfo",
    "UpstreamMeta",
    "DiscourseTopicInfo",
    "DiscourseStats",
    "AppStreamEntry",
    "DownloadStats",
    "ClassificationInput",
    "Classification",
    "RunStats",
]
