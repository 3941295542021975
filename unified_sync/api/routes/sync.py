"""Sync routes - Trigger sync passes on demand."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from unified_sync.api.deps import get_client, get_db, get_registry
from unified_sync.core.config import settings
from unified_sync.core.logging import get_logger
from unified_sync.integrations.client import IntegrationClient
from unified_sync.normalizers.registry import NormalizerRegistry
from unified_sync.schemas.api import SyncRunRequest, SyncRunResponse
from unified_sync.services.sync_service import MODEL_FOR_PROVIDER, SyncOrchestrator

router = APIRouter(prefix="/sync", tags=["sync"])
log = get_logger("sync_routes")


@router.post("/run", response_model=SyncRunResponse)
async def trigger_sync(
    body: SyncRunRequest,
    db: Session = Depends(get_db),
    client: IntegrationClient = Depends(get_client),
    registry: NormalizerRegistry = Depends(get_registry),
):
    """
    Run one sync pass for a provider connection and wait for it to finish.

    When ``model`` is omitted the provider's default polling model is used.
    Record-level failures are counted in ``errors``; the pass still returns 200.
    """
    model = body.model or MODEL_FOR_PROVIDER.get(body.provider)
    if not model:
        raise HTTPException(status_code=422, detail=f"No default model for provider '{body.provider}'; pass 'model'")

    log.info(f"Manual sync requested for {body.provider} ({body.connection_id}) model={model}")
    orchestrator = SyncOrchestrator.from_settings(db, settings, client, registry)
    result = await orchestrator.sync_integration(
        body.provider,
        body.connection_id,
        model,
        modified_after=body.modified_after,
        trigger="manual",
    )
    return SyncRunResponse.model_validate(result.to_dict())


@router.post("/run-all")
async def trigger_sync_all(
    db: Session = Depends(get_db),
    client: IntegrationClient = Depends(get_client),
    registry: NormalizerRegistry = Depends(get_registry),
):
    """
    Poll every connection known to the platform, one pass each.

    Connections whose provider has no default model are skipped.
    """
    log.info("Sync triggered for all connections")
    orchestrator = SyncOrchestrator.from_settings(db, settings, client, registry)
    results = await orchestrator.sync_all_connections()

    return {
        "success": all(r.errors == 0 for r in results),
        "results": [r.to_dict() for r in results],
    }
