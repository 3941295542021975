from unified_sync.api.routes.health import router as health_router
from unified_sync.api.routes.objects import router as objects_router
from unified_sync.api.routes.stats import router as stats_router
from unified_sync.api.routes.sync import router as sync_router
from unified_sync.api.routes.sync_config import router as sync_config_router
from unified_sync.api.routes.webhooks import router as webhooks_router

__all__ = [
    "health_router",
    "objects_router",
    "stats_router",
    "sync_router",
    "sync_config_router",
    "webhooks_router",
]
