"""Stats routes - Sync run observability and object store counts."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from unified_sync.api.deps import get_db, get_worker_pool
from unified_sync.models.runs import SyncRun
from unified_sync.models.unified_object import STATE_ACTIVE, STATE_DELETED
from unified_sync.schemas.api import ObjectCountsResponse, StatsResponse
from unified_sync.services.repository import UnifiedObjectRepository
from unified_sync.services.worker import WorkerPool

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("", response_model=list[StatsResponse])
def get_sync_stats(
    provider: Optional[str] = Query(None, description="Filter by provider key"),
    status: Optional[str] = Query(None, description="Filter by status (running, success, partial, failure)"),
    limit: int = Query(10, ge=1, le=50, description="Number of runs to return"),
    db: Session = Depends(get_db),
):
    """
    Recent sync passes, newest first.

    Shows synced/skipped/error counts, trigger and status per pass.
    """
    stmt = select(SyncRun)
    if provider:
        stmt = stmt.where(SyncRun.provider == provider)
    if status:
        stmt = stmt.where(SyncRun.status == status)
    stmt = stmt.order_by(SyncRun.started_at.desc()).limit(limit)

    runs = db.execute(stmt).scalars().all()
    return [StatsResponse.model_validate(run) for run in runs]


@router.get("/objects", response_model=ObjectCountsResponse)
def get_object_counts(db: Session = Depends(get_db)):
    """Object totals by lifecycle state, plus active objects by provider and by type."""
    repository = UnifiedObjectRepository(db)
    active = repository.count(state=STATE_ACTIVE)
    deleted = repository.count(state=STATE_DELETED)

    return ObjectCountsResponse(
        total=active + deleted,
        active=active,
        deleted=deleted,
        by_provider=repository.counts_by("provider"),
        by_type=repository.counts_by("type"),
    )


@router.get("/webhooks")
def get_webhook_queue(pool: WorkerPool = Depends(get_worker_pool)):
    """Webhook worker pool state and the most recent dead letters."""
    return {
        "running": pool.running,
        "workers": pool.workers,
        "queue_depth": pool.queue.qsize(),
        "processed": pool.processed,
        "dead_letters": [
            {
                "job_id": dl.job.job_id,
                "event_kind": dl.job.event_kind,
                "error": dl.error,
                "failed_at": dl.failed_at,
            }
            for dl in pool.dead_letters
        ],
    }
