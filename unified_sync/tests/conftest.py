"""Shared fixtures: in-memory database, fake integration platform, test app client."""

from collections import defaultdict
from typing import Any, Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from unified_sync.api.deps import get_db
from unified_sync.core.config import Settings, settings
from unified_sync.core.exceptions import EnrichmentError
from unified_sync.integrations.client import ConnectionRef, RecordsPage
from unified_sync.main import app
from unified_sync.models import Base
from unified_sync.normalizers.registry import default_registry
from unified_sync.schemas.normalized import NormalizedData
from unified_sync.services.change_detector import fingerprint
from unified_sync.services.enrichment import EnrichmentResult
from unified_sync.services.repository import ObjectCandidate

TEST_WEBHOOK_SECRET = "test-webhook-secret"


def make_candidate(external_id="r1", title="Roadmap", provider="google-drive", connection_id="c1", slug=None, **raw):
    """Repository input for a drive file whose raw payload is derived from the arguments."""
    record = {"id": external_id, "title": title, **raw}
    return ObjectCandidate(
        provider=provider,
        connection_id=connection_id,
        external_id=external_id,
        normalized=NormalizedData(type="file", title=title),
        metadata_raw=record,
        content_hash=fingerprint(record),
        slug=slug,
    )


class FakeIntegrationClient:
    """In-memory stand-in for the integration platform."""

    def __init__(self):
        self.pages: Dict[Tuple[str, str, str], List[Any]] = defaultdict(list)
        self.connections: List[ConnectionRef] = []
        self.fetch_calls: List[Dict[str, Any]] = []
        self.triggered: List[Dict[str, Any]] = []

    def add_page(self, provider: str, connection_id: str, model: str, records: List[Dict[str, Any]]) -> None:
        self.pages[(provider, connection_id, model)].append(records)

    def fail_fetch(self, provider: str, connection_id: str, model: str, exc: Exception) -> None:
        self.pages[(provider, connection_id, model)].append(exc)

    async def iter_records(self, provider_config_key, connection_id, model, modified_after=None, limit=1000):
        self.fetch_calls.append(
            {
                "provider": provider_config_key,
                "connection_id": connection_id,
                "model": model,
                "modified_after": modified_after,
            }
        )
        for page in self.pages.get((provider_config_key, connection_id, model), []):
            if isinstance(page, Exception):
                raise page
            yield RecordsPage(records=list(page), next_cursor=None)

    async def list_connections(self) -> List[ConnectionRef]:
        return list(self.connections)

    async def trigger_sync(self, provider_config_key, syncs, connection_id, full_resync=False) -> None:
        self.triggered.append(
            {
                "provider": provider_config_key,
                "syncs": syncs,
                "connection_id": connection_id,
                "full_resync": full_resync,
            }
        )

    async def proxy_get(self, provider_config_key, connection_id, endpoint, params=None) -> bytes:
        return b"Quarterly plan. Hiring two engineers. Launch in March."


class FakeEnricher:
    def __init__(self, summary: Optional[str] = "A short summary.", fail: bool = False):
        self.summary = summary
        self.fail = fail
        self.calls: List[str] = []

    def should_enrich(self, provider: str, mime_type: Optional[str]) -> bool:
        return provider == "google-drive"

    async def fetch_and_summarize(self, provider, connection_id, external_id, mime_type, metadata_raw):
        self.calls.append(external_id)
        if self.fail:
            raise EnrichmentError("download failed")
        return EnrichmentResult(description=self.summary, summary=self.summary)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        WEBHOOK_SECRET=TEST_WEBHOOK_SECRET,
        ENRICHMENT_ENABLED=False,
        SYNC_FETCH_TIMEOUT_SECONDS=5,
        SYNC_RECORD_TIMEOUT_SECONDS=5,
    )


@pytest.fixture
def fake_client():
    return FakeIntegrationClient()


@pytest.fixture
def registry(test_settings):
    return default_registry(test_settings)


@pytest.fixture
def api_client(monkeypatch, session_factory, fake_client, registry):
    """TestClient running the real lifespan against the in-memory database and fake platform."""
    monkeypatch.setattr(settings, "RUN_MIGRATIONS", False)
    monkeypatch.setattr(settings, "SYNC_ALL_ENABLED", False)
    monkeypatch.setattr(settings, "ENRICHMENT_ENABLED", False)
    monkeypatch.setattr(settings, "WEBHOOK_SECRET", TEST_WEBHOOK_SECRET)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.state.session_factory = session_factory
    app.state.integration_client = fake_client
    app.state.registry = registry

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
    for name in ("session_factory", "integration_client", "registry", "worker_pool", "ingestor"):
        if hasattr(app.state, name):
            delattr(app.state, name)
