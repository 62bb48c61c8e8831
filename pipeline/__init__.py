"""
Sync and classification pipeline for the COPR catalog.

This package contains every component that keeps the catalog store fresh:

Modules:
    ttl: Freshness gate consulted before any job does work
    base: Abstract base class for jobs with Sync Job Record management
    runner: Orchestrator that runs jobs independently and collects RunStats
    scheduler: APScheduler integration for periodic job execution

Subpackages:
    extractors: Clients for the COPR API and bulk export, forges,
        the discussion forum and the AppStream category indices
    transformers: Pure folds, popularity scoring, category mapping,
        heuristics and the three-tier classifier chain
    loaders: Catalog store writes (upserts and atomic replaces)
    jobs: One module per scheduled job

Architecture:
    Data flows one direction:

    1. Extract - Fetch from external sources with fixed inter-call delays
    2. Transform - Aggregate, score and classify
    3. Load - Idempotent per-item writes to the store

    A failing item is logged and counted, never aborting its batch.
    A failing job is logged and its Sync Job Record is left untouched,
    so it retries on the next scheduler tick.

Usage:
    from pipeline.runner import SyncRunner, build_default_jobs

    runner = SyncRunner(session_maker)
    results = await runner.run_all(build_default_jobs(), force=False)

    for stats in results:
        print(f"{stats.job_name}: {stats.status.value} ({stats.updated} updated)")
"""

__all__ = [
    "should_skip_sync",
    "SyncJobBase",
    "SyncRunner",
    "SyncScheduler",
]
