from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UnifiedObjectOut(BaseModel):
    """A synced object as served to readers; ``metadata_raw`` is omitted."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    provider: str
    connection_id: str
    external_id: str
    type: str
    title: str
    description: Optional[str] = None
    summary: Optional[str] = None
    source_url: Optional[str] = None
    mime_type: Optional[str] = None
    metadata_normalized: Optional[Dict[str, Any]] = None
    canonical_url: str
    slug: Optional[str] = None
    state: str
    created_at: datetime
    updated_at: datetime


class UnifiedObjectDetail(UnifiedObjectOut):
    metadata_raw: Dict[str, Any]


class ObjectsResponse(BaseModel):
    request_id: str
    api_latency_ms: int
    total_count: int
    data: list[UnifiedObjectOut]


class DataTypeToggle(BaseModel):
    enabled: bool = True
    include_in_publish: bool = True


class SyncConfigUpdate(BaseModel):
    sync_config: Dict[str, DataTypeToggle]


class SyncConfigOut(BaseModel):
    connection_id: str
    provider: str
    provider_display_name: str
    sync_config: Dict[str, Dict[str, Any]]
    updated_at: Optional[datetime] = None


class SyncRunRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    provider: str
    connection_id: str = Field(alias="connectionId")
    model: Optional[str] = None
    modified_after: Optional[datetime] = Field(default=None, alias="modifiedAfter")


class SyncRunResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    provider: str
    connection_id: str = Field(alias="connectionId")
    synced: int
    errors: int
    skipped: int
    created: int = 0
    updated: int = 0
    deleted: int = 0
    error: Optional[str] = None


class HealthResponse(BaseModel):
    database: str
    last_sync_status: str | None
    webhook_workers: str
    webhook_queue_depth: int


class StatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    run_id: UUID
    provider: str
    connection_id: str
    model: str
    trigger: str
    status: str
    synced: int
    skipped: int
    errors: int
    error_message: str | None = None
    started_at: datetime
    ended_at: datetime | None


class ObjectCountsResponse(BaseModel):
    total: int
    active: int
    deleted: int
    by_provider: Dict[str, int]
    by_type: Dict[str, int]
