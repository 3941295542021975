"""Sync entrypoint - Standalone script for running sync passes.

Usage:
    python -m unified_sync.sync_entrypoint                                   # Poll all connections
    python -m unified_sync.sync_entrypoint github conn-1 GithubIssue         # One pass
    python -m unified_sync.sync_entrypoint backfill-slugs                    # Assign missing slugs
"""

import asyncio
import sys
from typing import List

from unified_sync.core.config import settings
from unified_sync.core.db import SessionLocal
from unified_sync.core.logging import get_logger
from unified_sync.integrations.client import IntegrationClient
from unified_sync.normalizers.registry import default_registry
from unified_sync.services.repository import UnifiedObjectRepository, slugify
from unified_sync.services.sync_service import SyncOrchestrator, SyncResult

logger = get_logger("sync_entrypoint")

USAGE = "usage: sync_entrypoint [<provider> <connection_id> <model> | backfill-slugs]"


def _orchestrator(db) -> SyncOrchestrator:
    return SyncOrchestrator.from_settings(db, settings, IntegrationClient.from_settings(settings), default_registry(settings))


async def run_sync_job(provider: str, connection_id: str, model: str) -> List[SyncResult]:
    """Run one pass for a single connection."""
    logger.info(f"Starting sync job for {provider} ({connection_id}) model={model}")
    with SessionLocal() as db:
        result = await _orchestrator(db).sync_integration(provider, connection_id, model, trigger="manual")
        logger.info(f"Sync job completed: {result.to_dict()}")
        return [result]


async def run_all_connections() -> List[SyncResult]:
    """Poll every connection the integration platform knows about."""
    logger.info("Running sync for all connections")
    with SessionLocal() as db:
        results = await _orchestrator(db).sync_all_connections()
        logger.info(f"Sync completed for {len(results)} connections")
        return results


def backfill_slugs(batch_size: int = 500) -> int:
    """Give every slug-less object a slug. Canonical URLs already assigned are kept."""
    assigned = 0
    with SessionLocal() as db:
        repository = UnifiedObjectRepository(db)
        while True:
            batch = repository.objects_without_slug(limit=batch_size)
            if not batch:
                break
            for obj in batch:
                repository.assign_slug(obj.id, slugify(obj.title, obj.id))
                assigned += 1
            logger.info(f"Assigned {assigned} slugs so far")
    logger.info(f"Slug backfill complete: {assigned} objects updated")
    return assigned


def main():
    """Main entry point for the sync CLI."""
    logger.info("Sync CLI starting...")
    args = sys.argv[1:]

    if args == ["backfill-slugs"]:
        backfill_slugs()
        return

    if not args:
        results = asyncio.run(run_all_connections())
    elif len(args) == 3:
        results = asyncio.run(run_sync_job(*args))
    else:
        logger.error(USAGE)
        sys.exit(2)

    for result in results:
        logger.info(f"{result.provider} ({result.connection_id}): {result.to_dict()}")

    # Exit with error code if any pass reported errors
    if any(r.errors for r in results):
        sys.exit(1)

    return results


if __name__ == "__main__":
    main()
