"""Webhook ingestion: verify and enqueue on the request path, process on a worker."""

from __future__ import annotations

import hashlib
import hmac
import json
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from unified_sync.core.config import Settings
from unified_sync.core.db import dialect_insert
from unified_sync.core.exceptions import IntegrationError, InvalidSignatureError
from unified_sync.core.logging import get_logger
from unified_sync.integrations.client import IntegrationClient
from unified_sync.models.connection import UserConnection
from unified_sync.normalizers.registry import NormalizerRegistry
from unified_sync.schemas.webhook import WebhookBody
from unified_sync.services.repository import UnifiedObjectRepository
from unified_sync.services.sync_service import MODEL_FOR_PROVIDER, SyncOrchestrator
from unified_sync.services.worker import WebhookJob, WorkerPool

log = get_logger("webhook_service")

EVENT_CONNECTION_CREATED = "auth"
EVENT_RECORDS_CHANGED = "sync"

# Providers that get a clean full resync when a connection is (re)created:
# provider -> (syncs to trigger, object type cleared beforehand)
RESYNC_ON_CONNECT: Dict[str, Tuple[List[str], str]] = {
    "google-drive": (["documents"], "file"),
}


def compute_signature(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(secret: str, body: bytes, signature: Optional[str]) -> bool:
    """Constant-time check of an HMAC-SHA256 hex signature (``sha256=`` prefix allowed)."""
    if not secret or not signature:
        return False
    provided = signature.strip()
    if provided.startswith("sha256="):
        provided = provided[len("sha256="):]
    return hmac.compare_digest(compute_signature(secret, body), provided.lower())


class InvalidPayloadError(ValueError):
    pass


class WebhookIngestor:
    """Boundary component: nothing reaches the queue without a valid signature."""

    def __init__(self, secret: str, pool: WorkerPool):
        self.secret = secret
        self.pool = pool

    def receive(self, raw_body: bytes, signature: Optional[str]) -> WebhookJob:
        if not verify_signature(self.secret, raw_body, signature):
            raise InvalidSignatureError("Webhook signature mismatch")

        # Only the envelope is checked here; the event shape is validated by the worker
        try:
            payload = json.loads(raw_body)
        except ValueError as exc:
            raise InvalidPayloadError(f"Webhook body is not JSON: {exc}") from exc
        if not isinstance(payload, dict) or not isinstance(payload.get("type"), str):
            raise InvalidPayloadError("Webhook body has no event type")

        job = WebhookJob(event_kind=payload["type"], payload=payload)
        self.pool.enqueue(job)
        log.info(
            f"Webhook accepted job={job.job_id} type={job.event_kind} "
            f"provider={payload.get('providerConfigKey')} connection={payload.get('connectionId')}"
        )
        return job


class WebhookProcessor:
    """Job handler run by the worker pool; each job gets its own session."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        client: IntegrationClient,
        registry: NormalizerRegistry,
        settings: Settings,
    ):
        self.session_factory = session_factory
        self.client = client
        self.registry = registry
        self.settings = settings

    async def __call__(self, job: WebhookJob) -> None:
        await self.process(job)

    async def process(self, job: WebhookJob) -> None:
        """Dispatch a job by event kind.

        Unknown kinds are dropped before validation. A known kind with a bad
        shape raises ``ValidationError``, which dead-letters the job.
        """
        if job.event_kind not in (EVENT_CONNECTION_CREATED, EVENT_RECORDS_CHANGED):
            log.warning(f"Unsupported webhook type '{job.event_kind}' dropped (job={job.job_id})")
            return

        body = WebhookBody.model_validate(job.payload)
        with self.session_factory() as db:
            if job.event_kind == EVENT_CONNECTION_CREATED:
                await self.handle_connection_created(db, body)
            else:
                await self.handle_records_changed(db, body)

    async def handle_connection_created(self, db: Session, body: WebhookBody) -> None:
        if not body.success:
            log.error(f"Connection auth failed for {body.provider_config_key} ({body.connection_id})")
            return
        if body.operation != "creation":
            log.info(f"Connection {body.operation} for {body.provider_config_key} ({body.connection_id})")
            return

        provider = body.provider_config_key
        if body.end_user is not None:
            self._upsert_connection(db, body)
        else:
            log.warning(f"New connection {provider} ({body.connection_id}) has no end user; not recorded locally")

        resync = RESYNC_ON_CONNECT.get(provider)
        if resync is None:
            return

        syncs, object_type = resync
        UnifiedObjectRepository(db).purge_for_connection(body.connection_id, provider, object_type)
        try:
            await self.client.trigger_sync(provider, syncs, body.connection_id, full_resync=True)
        except IntegrationError as exc:
            log.error(f"Failed to trigger initial sync for {provider} ({body.connection_id}): {exc}")

    async def handle_records_changed(self, db: Session, body: WebhookBody) -> None:
        if not body.success:
            log.error(f"Upstream sync failed for {body.provider_config_key} ({body.connection_id})")
            return

        model = body.model or MODEL_FOR_PROVIDER.get(body.provider_config_key)
        if not model:
            log.warning(f"Sync webhook for {body.provider_config_key} carries no model; dropped")
            return

        orchestrator = SyncOrchestrator.from_settings(db, self.settings, self.client, self.registry)
        result = await orchestrator.sync_integration(
            body.provider_config_key,
            body.connection_id,
            model,
            modified_after=body.modified_after,
            trigger="webhook",
        )
        log.info(f"Webhook sync complete: {result.synced} synced, {result.errors} errors")

    @staticmethod
    def _upsert_connection(db: Session, body: WebhookBody) -> None:
        stmt = dialect_insert(db, UserConnection).values(
            end_user_id=body.end_user.end_user_id,
            provider_config_key=body.provider_config_key,
            connection_id=body.connection_id,
            end_user_email=body.end_user.email,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[UserConnection.end_user_id, UserConnection.provider_config_key],
            set_={
                "connection_id": stmt.excluded.connection_id,
                "end_user_email": stmt.excluded.end_user_email,
            },
        )
        db.execute(stmt)
        db.commit()
        log.info(f"Recorded connection {body.provider_config_key} ({body.connection_id}) for {body.end_user.end_user_id}")
