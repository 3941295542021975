"""Explicit, injectable registry of provider normalizers."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional

from unified_sync.core.config import Settings
from unified_sync.core.logging import get_logger
from unified_sync.schemas.normalized import NormalizedData
from .base import BaseNormalizer
from .generic import GenericNormalizer
from .github import GithubNormalizer
from .google_calendar import GoogleCalendarNormalizer
from .google_drive import GoogleDriveNormalizer
from .jira import JiraNormalizer
from .salesforce import SalesforceNormalizer
from .slack import SlackNormalizer
from .zoho import ZohoNormalizer

log = get_logger("normalizers.registry")


class NormalizerRegistry:
    """Selects a normalizer by provider key, falling back to a generic one."""

    def __init__(self, fallback: Optional[BaseNormalizer] = None):
        self._normalizers: Dict[str, BaseNormalizer] = {}
        self.fallback = fallback or GenericNormalizer()

    def register(self, provider_keys: Iterable[str] | str, normalizer: BaseNormalizer) -> None:
        if isinstance(provider_keys, str):
            provider_keys = [provider_keys]
        for key in provider_keys:
            self._normalizers[key] = normalizer

    def get(self, provider: str) -> Optional[BaseNormalizer]:
        return self._normalizers.get(provider)

    def providers(self) -> list[str]:
        return sorted(self._normalizers)

    def normalize(self, provider: str, record: Mapping[str, Any], model: Optional[str] = None) -> NormalizedData:
        normalizer = self._normalizers.get(provider)
        if normalizer is None:
            log.debug(f"No normalizer for provider={provider}; using generic fallback")
            normalizer = self.fallback
        return normalizer.normalize(record, model)


def default_registry(settings: Settings) -> NormalizerRegistry:
    """Registry with every built-in provider, deep links wired from settings."""
    registry = NormalizerRegistry()
    registry.register("google-drive", GoogleDriveNormalizer())
    registry.register(["github", "github-getting-started"], GithubNormalizer())
    registry.register("salesforce", SalesforceNormalizer(instance_url=settings.SALESFORCE_INSTANCE_URL))
    registry.register("zoho-crm", ZohoNormalizer(domain=settings.ZOHO_CRM_DOMAIN, org_id=settings.ZOHO_CRM_ORG_ID))
    registry.register("slack", SlackNormalizer())
    registry.register(["google-calendar", "google-calendar-getting-started"], GoogleCalendarNormalizer())
    registry.register("jira", JiraNormalizer())
    return registry
