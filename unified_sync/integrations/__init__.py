from unified_sync.integrations.client import ConnectionRef, IntegrationClient, RecordsPage

__all__ = ["ConnectionRef", "IntegrationClient", "RecordsPage"]
