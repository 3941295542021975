# Services package
from unified_sync.services.data_type_gate import DataTypeGate
from unified_sync.services.repository import UnifiedObjectRepository
from unified_sync.services.sync_service import SyncOrchestrator, SyncResult
from unified_sync.services.webhook_service import WebhookIngestor, WebhookProcessor
from unified_sync.services.worker import WebhookJob, WorkerPool

__all__ = [
    "DataTypeGate",
    "UnifiedObjectRepository",
    "SyncOrchestrator",
    "SyncResult",
    "WebhookIngestor",
    "WebhookProcessor",
    "WebhookJob",
    "WorkerPool",
]
