"""Object routes - Read access to the unified object store."""

import time
import uuid
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from unified_sync.api.deps import get_db
from unified_sync.core.logging import get_logger
from unified_sync.schemas.api import ObjectsResponse, UnifiedObjectDetail, UnifiedObjectOut
from unified_sync.services.data_type_gate import DataTypeGate
from unified_sync.services.repository import UnifiedObjectRepository

router = APIRouter(tags=["objects"])
log = get_logger("object_routes")


# -----------------------------------------------------------------------------
# Listing
# -----------------------------------------------------------------------------


@router.get("/objects", response_model=ObjectsResponse)
def list_objects(
    provider: Optional[str] = Query(None, description="Filter by provider key"),
    connection_id: Optional[str] = Query(None, alias="connectionId", description="Filter by connection"),
    type: Optional[str] = Query(None, description="Filter by object type (file, issue, contact, ...)"),
    state: Optional[Literal["active", "deleted"]] = Query("active", description="Filter by lifecycle state"),
    published: bool = Query(False, description="Hide data types excluded from publishing (needs provider and connectionId)"),
    limit: int = Query(50, ge=1, le=500, description="Number of objects to return (max 500)"),
    offset: int = Query(0, ge=0, description="Number of objects to skip"),
    db: Session = Depends(get_db),
):
    """
    List unified objects, most recently updated first.

    Deleted objects are hidden unless ``state=deleted`` is requested. With
    ``published=true`` the connection's publish switches are applied as well.
    Includes request metadata (request_id, latency_ms).
    """
    start = time.perf_counter()
    request_id = str(uuid.uuid4())

    exclude_types = None
    if published:
        if not provider or not connection_id:
            raise HTTPException(status_code=400, detail="published=true requires provider and connectionId")
        exclude_types = DataTypeGate(db).unpublished_object_types(connection_id, provider)

    repository = UnifiedObjectRepository(db)
    objects = repository.list_objects(
        provider=provider,
        connection_id=connection_id,
        object_type=type,
        state=state,
        exclude_types=exclude_types,
        limit=limit,
        offset=offset,
    )
    total = repository.count(
        provider=provider,
        connection_id=connection_id,
        object_type=type,
        state=state,
        exclude_types=exclude_types,
    )

    latency_ms = int((time.perf_counter() - start) * 1000)

    return ObjectsResponse(
        request_id=request_id,
        api_latency_ms=latency_ms,
        total_count=total,
        data=[UnifiedObjectOut.model_validate(o) for o in objects],
    )


# -----------------------------------------------------------------------------
# Single object
# -----------------------------------------------------------------------------


@router.get("/item/{id_or_slug}", response_model=UnifiedObjectDetail)
def get_item(id_or_slug: str, db: Session = Depends(get_db)):
    """Resolve a canonical URL: the object id or its slug both work."""
    obj = UnifiedObjectRepository(db).get_by_id_or_slug(id_or_slug)
    if obj is None:
        raise HTTPException(status_code=404, detail=f"Item '{id_or_slug}' not found")
    return UnifiedObjectDetail.model_validate(obj)


@router.post("/objects/{object_id}/reactivate", response_model=UnifiedObjectOut)
def reactivate_object(object_id: uuid.UUID, db: Session = Depends(get_db)):
    """Bring back a soft-deleted object. Sync passes never do this on their own."""
    repository = UnifiedObjectRepository(db)
    obj = repository.get(object_id)
    if obj is None:
        raise HTTPException(status_code=404, detail=f"Object '{object_id}' not found")
    if not obj.is_deleted:
        raise HTTPException(status_code=409, detail=f"Object '{object_id}' is not deleted")

    obj = repository.reactivate(object_id)
    log.info(f"Object {object_id} reactivated via API")
    return UnifiedObjectOut.model_validate(obj)
