from unified_sync.models.base import Base
from unified_sync.models.connection import UserConnection
from unified_sync.models.runs import SyncRun
from unified_sync.models.sync_config import ConnectionSyncConfig
from unified_sync.models.unified_object import STATE_ACTIVE, STATE_DELETED, UnifiedObject

__all__ = [
    "Base",
    "UserConnection",
    "SyncRun",
    "ConnectionSyncConfig",
    "UnifiedObject",
    "STATE_ACTIVE",
    "STATE_DELETED",
]
