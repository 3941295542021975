"""Health routes - System health and readiness checks."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from unified_sync.api.deps import get_db, get_worker_pool
from unified_sync.models.runs import SyncRun
from unified_sync.schemas.api import HealthResponse
from unified_sync.services.worker import WorkerPool

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", response_model=HealthResponse)
def health(response: Response, db: Session = Depends(get_db), pool: WorkerPool = Depends(get_worker_pool)):
    """
    Health check endpoint for load balancer and container health checks.

    Checks database connectivity, the last sync pass and the webhook workers.
    Returns 503 if the database is unreachable.
    """
    last_status = None
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
        stmt = select(SyncRun.status).order_by(SyncRun.started_at.desc()).limit(1)
        last_status = db.execute(stmt).scalar_one_or_none()
    except SQLAlchemyError as e:
        db_status = f"down: {e}"
        response.status_code = 503

    return HealthResponse(
        database=db_status,
        last_sync_status=last_status,
        webhook_workers="running" if pool.running else "stopped",
        webhook_queue_depth=pool.queue.qsize(),
    )


@router.get("/ready")
def readiness(response: Response, db: Session = Depends(get_db)):
    """
    Readiness probe - checks if the service can serve traffic.

    Returns 200 if ready, 503 if the database is unreachable.
    """
    try:
        db.execute(text("SELECT 1"))
        return {"status": "ready", "timestamp": datetime.now(timezone.utc).isoformat()}
    except SQLAlchemyError as e:
        response.status_code = 503
        return {"status": "not_ready", "error": str(e), "timestamp": datetime.now(timezone.utc).isoformat()}
