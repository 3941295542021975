"""Per-connection switches deciding which object types are synced and published."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from unified_sync.core.db import dialect_insert
from unified_sync.core.exceptions import UnknownProviderError
from unified_sync.core.logging import get_logger
from unified_sync.models.sync_config import ConnectionSyncConfig

log = get_logger("data_type_gate")


@dataclass(frozen=True)
class DataTypeDefinition:
    key: str
    label: str
    description: str
    object_types: Tuple[str, ...]
    enabled: bool = True
    include_in_publish: bool = True
    coming_soon: bool = False

    def as_config(self) -> Dict[str, Any]:
        return {"enabled": self.enabled, "include_in_publish": self.include_in_publish}


@dataclass(frozen=True)
class ProviderDataTypes:
    provider: str
    display_name: str
    data_types: Tuple[DataTypeDefinition, ...]

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        for data_type in payload["data_types"]:
            data_type["object_types"] = list(data_type["object_types"])
        payload["data_types"] = list(payload["data_types"])
        return payload


# Source of truth for what each provider can sync. Every default is enabled so
# that new connections sync everything until configured otherwise.
PROVIDER_DATA_TYPES: Dict[str, ProviderDataTypes] = {
    "google-drive": ProviderDataTypes(
        "google-drive",
        "Google Drive",
        (DataTypeDefinition("files", "Files & Documents", "Sync Google Drive files and folders", ("file", "folder")),),
    ),
    "slack": ProviderDataTypes(
        "slack",
        "Slack",
        (
            DataTypeDefinition("users", "Users", "Sync Slack workspace users", ("contact",)),
            DataTypeDefinition("channels", "Channels", "Sync public channels", ("channel",), include_in_publish=False, coming_soon=True),
        ),
    ),
    "salesforce": ProviderDataTypes(
        "salesforce",
        "Salesforce",
        (
            DataTypeDefinition("accounts", "Accounts", "Sync Salesforce accounts", ("account",)),
            DataTypeDefinition("contacts", "Contacts", "Sync Salesforce contacts", ("contact",)),
            DataTypeDefinition("opportunities", "Opportunities", "Sync sales opportunities", ("opportunity",), include_in_publish=False),
        ),
    ),
    "zoho-crm": ProviderDataTypes(
        "zoho-crm",
        "Zoho CRM",
        (
            DataTypeDefinition("accounts", "Accounts", "Sync Zoho CRM accounts", ("account",)),
            DataTypeDefinition("contacts", "Contacts", "Sync Zoho CRM contacts", ("contact",)),
            DataTypeDefinition("deals", "Deals", "Sync Zoho CRM deals", ("deal",), include_in_publish=False),
        ),
    ),
    "workday": ProviderDataTypes(
        "workday",
        "Workday",
        (DataTypeDefinition("employees", "Employees", "Sync employee directory", ("employee",)),),
    ),
    "github": ProviderDataTypes(
        "github",
        "GitHub",
        (
            DataTypeDefinition("repositories", "Repositories", "Sync GitHub repositories", ("repository",)),
            DataTypeDefinition("issues", "Issues", "Sync repository issues", ("issue",), include_in_publish=False),
        ),
    ),
    "google-calendar": ProviderDataTypes(
        "google-calendar",
        "Google Calendar",
        (DataTypeDefinition("events", "Events", "Sync calendar events", ("event",), include_in_publish=False),),
    ),
    "jira": ProviderDataTypes(
        "jira",
        "Jira",
        (
            DataTypeDefinition("issues", "Issues", "Sync Jira issues", ("issue",)),
            DataTypeDefinition("projects", "Projects", "Sync Jira projects", ("project",)),
        ),
    ),
}

PROVIDER_ALIASES = {
    "github-getting-started": "github",
    "google-calendar-getting-started": "google-calendar",
}


def canonical_provider(provider: str) -> str:
    return PROVIDER_ALIASES.get(provider, provider)


def get_default_sync_config(provider: str) -> Dict[str, Dict[str, Any]]:
    """Default ``{data_type_key: {enabled, include_in_publish}}`` for a provider ({} if unknown)."""
    provider_types = PROVIDER_DATA_TYPES.get(canonical_provider(provider))
    if not provider_types:
        return {}
    return {dt.key: dt.as_config() for dt in provider_types.data_types}


def data_type_key(provider: str, object_type: str) -> Optional[str]:
    """Resolve the data-type key that governs an object type, if any."""
    provider_types = PROVIDER_DATA_TYPES.get(canonical_provider(provider))
    if not provider_types:
        return None
    for dt in provider_types.data_types:
        if object_type in dt.object_types or object_type == dt.key:
            return dt.key
    return None


def merge_sync_config(provider: str, stored: Any) -> Dict[str, Dict[str, Any]]:
    """Provider defaults overlaid with stored overrides; malformed entries are ignored."""
    merged = get_default_sync_config(provider)
    if not isinstance(stored, dict):
        return merged
    for key, value in stored.items():
        if isinstance(value, dict):
            merged[key] = {**merged.get(key, {}), **value}
        else:
            log.warning(f"Ignoring malformed sync config entry {provider}.{key}: {value!r}")
    return merged


class DataTypeGate:
    """Read-mostly view over ``connection_sync_configs``.

    Lookups fail open: when the stored configuration cannot be read, the data
    type is treated as enabled.
    """

    def __init__(self, db: Session):
        self.db = db

    def should_sync(self, connection_id: str, provider: str, object_type: str) -> bool:
        return self._flag(connection_id, provider, object_type, "enabled")

    def should_publish(self, connection_id: str, provider: str, object_type: str) -> bool:
        return self._flag(connection_id, provider, object_type, "include_in_publish")

    def _flag(self, connection_id: str, provider: str, object_type: str, flag: str) -> bool:
        try:
            stored = self._load(connection_id, provider)
        except SQLAlchemyError as exc:
            log.error(f"Sync config lookup failed for {provider}/{connection_id}; allowing {object_type}: {exc}")
            self.db.rollback()
            return True

        config = merge_sync_config(provider, stored.sync_config if stored is not None else None)

        key = data_type_key(provider, object_type) or object_type
        entry = config.get(key)
        if not isinstance(entry, dict):
            return True
        return bool(entry.get(flag, True))

    def unpublished_object_types(self, connection_id: str, provider: str) -> List[str]:
        """Object types whose data type is excluded from downstream publishing."""
        provider_types = PROVIDER_DATA_TYPES.get(canonical_provider(provider))
        if not provider_types:
            return []
        hidden: List[str] = []
        for dt in provider_types.data_types:
            for object_type in dt.object_types:
                if not self.should_publish(connection_id, provider, object_type):
                    hidden.append(object_type)
        return hidden

    def get_config(self, connection_id: str, provider: str) -> Dict[str, Any]:
        """Defaults merged with stored overrides, plus the row's ``updated_at``."""
        if canonical_provider(provider) not in PROVIDER_DATA_TYPES:
            raise UnknownProviderError(f"Provider '{provider}' has no data types")

        stored = self._load(connection_id, provider)
        merged = merge_sync_config(provider, stored.sync_config if stored is not None else None)
        return {
            "connection_id": connection_id,
            "provider": provider,
            "provider_display_name": PROVIDER_DATA_TYPES[canonical_provider(provider)].display_name,
            "sync_config": merged,
            "updated_at": stored.updated_at if stored else None,
        }

    def update_config(
        self, connection_id: str, provider: str, sync_config: Dict[str, Dict[str, Any]]
    ) -> ConnectionSyncConfig:
        """Create or replace the stored override row atomically."""
        stmt = dialect_insert(self.db, ConnectionSyncConfig).values(
            connection_id=connection_id,
            provider=provider,
            sync_config=sync_config,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[ConnectionSyncConfig.connection_id, ConnectionSyncConfig.provider],
            set_={"sync_config": stmt.excluded.sync_config, "updated_at": func.now()},
        )
        self.db.execute(stmt)
        self.db.commit()
        log.info(f"Updated sync config for {provider}/{connection_id}: {sorted(sync_config)}")
        row = self._load(connection_id, provider)
        self.db.refresh(row)
        return row

    @staticmethod
    def provider_data_types() -> List[Dict[str, Any]]:
        return [p.to_dict() for p in PROVIDER_DATA_TYPES.values()]

    def _load(self, connection_id: str, provider: str) -> Optional[ConnectionSyncConfig]:
        stmt = select(ConnectionSyncConfig).where(
            ConnectionSyncConfig.connection_id == connection_id,
            ConnectionSyncConfig.provider == provider,
        )
        return self.db.execute(stmt).scalar_one_or_none()
