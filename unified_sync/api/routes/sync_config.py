"""Sync config routes - Per-connection data-type switches."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from unified_sync.api.deps import get_db
from unified_sync.core.exceptions import UnknownProviderError
from unified_sync.schemas.api import SyncConfigOut, SyncConfigUpdate
from unified_sync.services.data_type_gate import DataTypeGate

router = APIRouter(tags=["sync-config"])


@router.get("/providers/data-types")
def list_provider_data_types():
    """Every provider's data types with their default switches."""
    return {"providers": DataTypeGate.provider_data_types()}


@router.get("/connections/{connection_id}/sync-config", response_model=SyncConfigOut)
def get_sync_config(
    connection_id: str,
    provider: str = Query(..., description="Provider key of the connection"),
    db: Session = Depends(get_db),
):
    """Effective configuration: provider defaults with stored overrides applied."""
    try:
        return DataTypeGate(db).get_config(connection_id, provider)
    except UnknownProviderError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.put("/connections/{connection_id}/sync-config", response_model=SyncConfigOut)
def update_sync_config(
    connection_id: str,
    body: SyncConfigUpdate,
    provider: str = Query(..., description="Provider key of the connection"),
    db: Session = Depends(get_db),
):
    """
    Replace the stored switches for a connection.

    Takes effect on the next record a sync pass processes. Objects already
    stored are left as they are.
    """
    gate = DataTypeGate(db)
    try:
        gate.get_config(connection_id, provider)
    except UnknownProviderError as exc:
        raise HTTPException(status_code=404, detail=str(exc))

    gate.update_config(
        connection_id,
        provider,
        {key: toggle.model_dump() for key, toggle in body.sync_config.items()},
    )
    return gate.get_config(connection_id, provider)
