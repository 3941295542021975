"""Sync orchestrator: fetch -> gate -> detect -> normalize -> persist, per provider connection."""

from __future__ import annotations

import asyncio
import enum
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Mapping, Optional

from sqlalchemy.orm import Session

from unified_sync.core.config import Settings
from unified_sync.core.exceptions import FetchTimeoutError, IntegrationError
from unified_sync.core.logging import get_logger
from unified_sync.integrations.client import IntegrationClient, RecordsPage
from unified_sync.models.runs import SyncRun
from unified_sync.normalizers.registry import NormalizerRegistry
from unified_sync.schemas.normalized import NormalizedData
from unified_sync.services.change_detector import fingerprint, has_changed
from unified_sync.services.data_type_gate import DataTypeGate
from unified_sync.services.enrichment import DocumentEnricher, SimpleSummarizer
from unified_sync.services.repository import (
    ObjectCandidate,
    UnifiedObjectRepository,
    UpsertOutcome,
)

log = get_logger("sync_service")

SyncTrigger = Literal["webhook", "poll", "manual"]

# Model synced for each provider when polling all connections
MODEL_FOR_PROVIDER: Dict[str, str] = {
    "google-drive": "Document",
    "zoho-crm": "Account",
    "github": "GithubRepo",
    "github-getting-started": "GithubRepo",
    "google-calendar": "Event",
    "google-calendar-getting-started": "Event",
    "slack": "SlackUser",
    "one-drive": "OneDriveFileSelection",
    "one-drive-personal": "OneDriveFileSelection",
    "salesforce": "SalesforceAccount",
    "jira": "Issue",
}


class RecordOutcome(str, enum.Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    UNCHANGED = "unchanged"
    GATED = "gated"


@dataclass
class SyncResult:
    provider: str
    connection_id: str
    synced: int = 0
    errors: int = 0
    skipped: int = 0
    created: int = 0
    updated: int = 0
    deleted: int = 0
    error: Optional[str] = None

    def record(self, outcome: RecordOutcome) -> None:
        if outcome is RecordOutcome.CREATED:
            self.created += 1
        elif outcome is RecordOutcome.UPDATED:
            self.updated += 1
        elif outcome is RecordOutcome.DELETED:
            self.deleted += 1
        else:
            self.skipped += 1
            return
        self.synced += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "connectionId": self.connection_id,
            "synced": self.synced,
            "errors": self.errors,
            "skipped": self.skipped,
            "created": self.created,
            "updated": self.updated,
            "deleted": self.deleted,
            "error": self.error,
        }


def external_id_of(record: Mapping[str, Any]) -> str:
    external_id = record.get("id") or record.get("externalId")
    if external_id in (None, ""):
        raise ValueError("Record has no id")
    return str(external_id)


def deleted_upstream(record: Mapping[str, Any]) -> bool:
    meta = record.get("_meta") or {}
    legacy = record.get("_nango_metadata") or {}
    return bool(meta.get("deletedAt") or meta.get("deleted_at") or legacy.get("deleted_at"))


def json_safe_copy(record: Mapping[str, Any]) -> Dict[str, Any]:
    """Detached, JSON-serializable copy of the verbatim payload."""
    return json.loads(json.dumps(record, default=str))


class SyncOrchestrator:
    """Runs sync passes for one provider connection at a time.

    Each record is handled independently: a failure is logged and counted and
    the pass moves on. Only a failure to fetch a page aborts the pass.
    """

    def __init__(
        self,
        db: Session,
        client: IntegrationClient,
        registry: NormalizerRegistry,
        gate: Optional[DataTypeGate] = None,
        repository: Optional[UnifiedObjectRepository] = None,
        enricher: Optional[DocumentEnricher] = None,
        page_size: int = 1000,
        fetch_timeout: float = 60.0,
        record_timeout: float = 120.0,
    ):
        self.db = db
        self.client = client
        self.registry = registry
        self.gate = gate or DataTypeGate(db)
        self.repository = repository or UnifiedObjectRepository(db)
        self.enricher = enricher
        self.page_size = page_size
        self.fetch_timeout = fetch_timeout
        self.record_timeout = record_timeout

    @classmethod
    def from_settings(
        cls,
        db: Session,
        settings: Settings,
        client: IntegrationClient,
        registry: NormalizerRegistry,
    ) -> "SyncOrchestrator":
        enricher = None
        if settings.ENRICHMENT_ENABLED:
            enricher = DocumentEnricher(client, SimpleSummarizer(max_words=settings.SUMMARY_MAX_WORDS))
        return cls(
            db,
            client,
            registry,
            enricher=enricher,
            page_size=settings.SYNC_PAGE_SIZE,
            fetch_timeout=settings.SYNC_FETCH_TIMEOUT_SECONDS,
            record_timeout=settings.SYNC_RECORD_TIMEOUT_SECONDS,
        )

    # -------------------------------------------------------------------------
    # Passes
    # -------------------------------------------------------------------------
    async def sync_integration(
        self,
        provider: str,
        connection_id: str,
        model: str,
        modified_after: Optional[datetime] = None,
        trigger: SyncTrigger = "manual",
    ) -> SyncResult:
        """Run one pass over ``model`` for a provider connection."""
        plog = get_logger("sync_service", provider=provider, connection_id=connection_id, model=model)
        result = SyncResult(provider=provider, connection_id=connection_id)
        run = self._start_run(provider, connection_id, model, trigger)
        plog.info(f"Syncing {provider} ({connection_id}) model={model} trigger={trigger} since={modified_after}")

        pages = self.client.iter_records(
            provider,
            connection_id,
            model,
            modified_after=modified_after,
            limit=self.page_size,
        )
        try:
            while True:
                page = await self._next_page(pages)
                if page is None:
                    break
                plog.debug(f"Fetched page with {len(page.records)} records")
                for record in page.records:
                    await self._sync_one(provider, connection_id, model, record, result)
        except asyncio.CancelledError:
            self.db.rollback()
            result.errors += 1
            result.error = "pass cancelled"
            plog.warning(f"Sync pass for {provider} ({connection_id}) cancelled")
            self._finish_run(run, result)
            raise
        except Exception as exc:
            result.errors += 1
            result.error = str(exc)
            plog.error(f"Fetch failed for {provider} ({connection_id}); pass aborted: {exc}")
        finally:
            await pages.aclose()

        self._finish_run(run, result)
        plog.info(
            f"Sync complete for {provider}: synced={result.synced} "
            f"(created={result.created} updated={result.updated} deleted={result.deleted}) "
            f"skipped={result.skipped} errors={result.errors}"
        )
        return result

    async def sync_all_connections(self) -> List[SyncResult]:
        """Poll mode: one pass per known connection, sequentially and independently."""
        try:
            connections = await self.client.list_connections()
        except IntegrationError as exc:
            log.error(f"Failed to list connections: {exc}")
            return []

        log.info(f"Found {len(connections)} connections")
        results: List[SyncResult] = []
        for connection in connections:
            provider = connection.provider_config_key
            model = MODEL_FOR_PROVIDER.get(provider)
            if not model:
                log.info(f"Skipping {provider} ({connection.connection_id}) - no model mapping configured")
                continue
            try:
                results.append(await self.sync_integration(provider, connection.connection_id, model, trigger="poll"))
            except Exception as exc:
                log.exception(f"Sync pass crashed for {provider} ({connection.connection_id}): {exc}")
                self.db.rollback()
                results.append(SyncResult(provider=provider, connection_id=connection.connection_id, errors=1, error=str(exc)))
        return results

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------
    async def _sync_one(
        self,
        provider: str,
        connection_id: str,
        model: str,
        record: Mapping[str, Any],
        result: SyncResult,
    ) -> None:
        try:
            outcome = await self.process_record(provider, connection_id, model, record)
        except Exception as exc:
            self.db.rollback()
            result.errors += 1
            log.opt(exception=exc).error(f"Error syncing record {record.get('id')} from {provider}: {exc}")
            return
        result.record(outcome)

    async def process_record(
        self,
        provider: str,
        connection_id: str,
        model: str,
        record: Mapping[str, Any],
    ) -> RecordOutcome:
        external_id = external_id_of(record)

        if deleted_upstream(record):
            if self.repository.mark_deleted(provider, external_id):
                log.debug(f"Marked as deleted: {provider}/{external_id}")
            return RecordOutcome.DELETED

        existing = self.repository.find_by_provider_external_id(provider, external_id)
        normalized = await self._normalize(provider, record, model)

        if not self.gate.should_sync(connection_id, provider, normalized.type):
            log.debug(f"Skipping {normalized.type} - sync disabled for {provider}/{connection_id}")
            return RecordOutcome.GATED

        content_hash = fingerprint(record)
        if existing is not None and not has_changed(existing, content_hash):
            log.debug(f"Skipping unchanged record: {provider}/{external_id}")
            return RecordOutcome.UNCHANGED

        candidate = ObjectCandidate(
            provider=provider,
            connection_id=connection_id,
            external_id=external_id,
            normalized=normalized,
            metadata_raw=json_safe_copy(record),
            content_hash=content_hash,
        )

        if existing is not None:
            self.repository.update(existing.id, candidate)
            log.debug(f"Updated record: {provider}/{external_id}")
            return RecordOutcome.UPDATED

        outcome, obj = self.repository.upsert(candidate)
        if outcome is UpsertOutcome.CREATED:
            log.debug(f"Created new record: {provider}/{external_id} -> {obj.id}")
            await self._enrich(obj)
            return RecordOutcome.CREATED
        # Another pass created the row between our lookup and the insert
        return RecordOutcome.UPDATED if outcome is UpsertOutcome.UPDATED else RecordOutcome.UNCHANGED

    async def _normalize(self, provider: str, record: Mapping[str, Any], model: str) -> NormalizedData:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.registry.normalize, provider, record, model),
                timeout=self.record_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise FetchTimeoutError(f"Normalizing {provider} record exceeded {self.record_timeout}s") from exc

    async def _enrich(self, obj) -> None:
        if self.enricher is None or not self.enricher.should_enrich(obj.provider, obj.mime_type):
            return
        try:
            enrichment = await asyncio.wait_for(
                self.enricher.fetch_and_summarize(
                    obj.provider,
                    obj.connection_id,
                    obj.external_id,
                    obj.mime_type,
                    obj.metadata_raw,
                ),
                timeout=self.record_timeout,
            )
        except Exception as exc:
            log.warning(f"Failed to fetch/summarize document {obj.provider}/{obj.external_id}: {exc!r}")
            return

        if enrichment.summary:
            self.repository.attach_summary(obj.id, enrichment.description, enrichment.summary)
            log.debug(f"Added summary to document: {obj.provider}/{obj.external_id}")

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------
    async def _next_page(self, pages) -> Optional[RecordsPage]:
        try:
            return await asyncio.wait_for(anext(pages), timeout=self.fetch_timeout)
        except StopAsyncIteration:
            return None
        except asyncio.TimeoutError as exc:
            raise FetchTimeoutError(f"Page fetch exceeded {self.fetch_timeout}s") from exc

    def _start_run(self, provider: str, connection_id: str, model: str, trigger: str) -> SyncRun:
        run = SyncRun(
            provider=provider,
            connection_id=connection_id,
            model=model,
            trigger=trigger,
            status="running",
        )
        self.db.add(run)
        self.db.commit()
        return run

    def _finish_run(self, run: SyncRun, result: SyncResult) -> None:
        if result.error:
            run.status = "failure"
        elif result.errors:
            run.status = "partial"
        else:
            run.status = "success"
        run.synced = result.synced
        run.skipped = result.skipped
        run.errors = result.errors
        run.error_message = result.error
        run.ended_at = datetime.now(timezone.utc)
        self.db.add(run)
        self.db.commit()
