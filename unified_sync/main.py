from pathlib import Path
from contextlib import asynccontextmanager
import asyncio
from typing import Optional

from alembic import command
from alembic.config import Config
from fastapi import FastAPI

from unified_sync.api.routes import health, objects, stats, sync, sync_config, webhooks
from unified_sync.core.config import settings
from unified_sync.core.db import SessionLocal
from unified_sync.core.logging import get_logger
from unified_sync.integrations.client import IntegrationClient
from unified_sync.normalizers.registry import default_registry
from unified_sync.services.sync_service import SyncOrchestrator
from unified_sync.services.webhook_service import WebhookIngestor, WebhookProcessor
from unified_sync.services.worker import WorkerPool


log = get_logger("app")

# Background task handle
_sync_task: Optional[asyncio.Task] = None


def run_migrations() -> None:
    """Execute Alembic migrations programmatically on startup."""
    project_root = Path(__file__).resolve().parent.parent
    alembic_cfg = Config(str(project_root / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(project_root / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.DATABASE_URL)
    log.info("Running Alembic migrations to head")
    command.upgrade(alembic_cfg, "head")
    log.info("Alembic migrations applied")


async def run_sync_all(app: FastAPI) -> None:
    """Poll every known connection once."""
    log.info("Starting sync pass over all connections...")
    with app.state.session_factory() as db:
        orchestrator = SyncOrchestrator.from_settings(db, settings, app.state.integration_client, app.state.registry)
        try:
            results = await orchestrator.sync_all_connections()
        except Exception as exc:
            log.exception(f"Sync-all failed: {exc}")
            return

    for result in results:
        if result.error:
            log.error(f"Sync {result.provider} ({result.connection_id}): failed - {result.error}")
        else:
            log.info(f"Sync {result.provider} ({result.connection_id}): {result.synced} synced, {result.errors} errors")

    log.info(f"Sync-all completed: {len(results)} connections")


async def scheduled_sync_task(app: FastAPI) -> None:
    """Background task that polls all connections at the configured interval."""
    interval = settings.SYNC_ALL_INTERVAL_SECONDS
    log.info(f"Scheduled sync task started (interval: {interval}s)")

    while True:
        try:
            await run_sync_all(app)
            await asyncio.sleep(interval)
        except asyncio.CancelledError:
            log.info("Scheduled sync task cancelled")
            break
        except Exception as exc:
            log.exception(f"Scheduled sync task error: {exc}")
            await asyncio.sleep(interval)


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _sync_task

    log.info(f"Starting application in {settings.ENV.upper()} mode")
    if settings.is_production:
        log.info("Production mode: Debug disabled, docs disabled, stricter logging")
    else:
        log.info("Development mode: Debug enabled, docs available")

    # Startup
    if settings.RUN_MIGRATIONS:
        try:
            run_migrations()
        except Exception:
            log.exception("Failed to apply migrations on startup")
            raise

    if not settings.WEBHOOK_SECRET:
        log.warning("WEBHOOK_SECRET is empty; every webhook will be rejected")

    # Collaborators may be pre-seeded on app.state (tests inject fakes)
    if not hasattr(app.state, "integration_client"):
        app.state.integration_client = IntegrationClient.from_settings(settings)
    if not hasattr(app.state, "registry"):
        app.state.registry = default_registry(settings)
    if not hasattr(app.state, "session_factory"):
        app.state.session_factory = SessionLocal

    processor = WebhookProcessor(app.state.session_factory, app.state.integration_client, app.state.registry, settings)
    app.state.worker_pool = WorkerPool(
        processor,
        workers=settings.WEBHOOK_WORKERS,
        queue_size=settings.WEBHOOK_QUEUE_SIZE,
        shutdown_grace=settings.WEBHOOK_SHUTDOWN_GRACE_SECONDS,
    )
    app.state.ingestor = WebhookIngestor(settings.WEBHOOK_SECRET, app.state.worker_pool)
    await app.state.worker_pool.start()

    if settings.SYNC_ALL_ENABLED:
        log.info("Starting scheduled sync background task...")
        _sync_task = asyncio.create_task(scheduled_sync_task(app))
    else:
        log.info("Scheduled sync is disabled (SYNC_ALL_ENABLED=false)")

    yield

    # Shutdown
    log.info("Shutting down services...")

    if _sync_task:
        log.info("Cancelling scheduled sync task...")
        _sync_task.cancel()
        try:
            await _sync_task
        except asyncio.CancelledError:
            pass
        _sync_task = None

    await app.state.worker_pool.stop()

    log.info("Application shutdown complete")


# Configure FastAPI based on environment
app = FastAPI(
    title="Unified Sync Engine",
    description="Webhook-driven sync of provider records into a unified, canonically-addressed object store",
    version="0.1.0",
    lifespan=lifespan,
    # Disable docs in production
    docs_url="/docs" if settings.docs_enabled else None,
    redoc_url="/redoc" if settings.docs_enabled else None,
    openapi_url="/openapi.json" if settings.docs_enabled else None,
    debug=settings.debug_enabled,
)


app.include_router(webhooks.router)
app.include_router(sync.router)
app.include_router(objects.router)
app.include_router(sync_config.router)
app.include_router(health.router)
app.include_router(stats.router)
