"""Webhook ingestion tests: signature boundary, queueing and processing"""

import json

import pytest
from sqlalchemy import select

from unified_sync.main import app
from unified_sync.models.connection import UserConnection
from unified_sync.services.repository import UnifiedObjectRepository
from unified_sync.services.webhook_service import (
    InvalidPayloadError,
    WebhookIngestor,
    compute_signature,
    verify_signature,
)
from unified_sync.core.exceptions import InvalidSignatureError
from unified_sync.services.worker import WorkerPool

from conftest import TEST_WEBHOOK_SECRET, make_candidate


def signed(payload, secret=TEST_WEBHOOK_SECRET):
    body = json.dumps(payload).encode("utf-8")
    return body, {"X-Webhook-Signature": compute_signature(secret, body), "Content-Type": "application/json"}


def drain(api_client):
    api_client.portal.call(app.state.worker_pool.drain, 5.0)


SYNC_EVENT = {
    "type": "sync",
    "providerConfigKey": "github",
    "connectionId": "c1",
    "model": "GithubIssue",
    "success": True,
}


class TestSignature:
    def test_valid_signature(self):
        body = b'{"type":"sync"}'
        assert verify_signature("s3cret", body, compute_signature("s3cret", body)) is True

    def test_prefixed_signature(self):
        body = b'{"type":"sync"}'
        assert verify_signature("s3cret", body, "sha256=" + compute_signature("s3cret", body)) is True

    @pytest.mark.parametrize("signature", [None, "", "deadbeef"])
    def test_rejected_signatures(self, signature):
        assert verify_signature("s3cret", b"{}", signature) is False

    def test_empty_secret_rejects_everything(self):
        assert verify_signature("", b"{}", compute_signature("", b"{}")) is False

    def test_body_must_match_exactly(self):
        signature = compute_signature("s3cret", b'{"a": 1}')
        assert verify_signature("s3cret", b'{"a":1}', signature) is False


class TestIngestor:
    def _pool(self):
        async def handler(job):
            return None

        return WorkerPool(handler, workers=1, queue_size=10)

    def test_invalid_signature_never_enqueues(self):
        pool = self._pool()
        ingestor = WebhookIngestor("s3cret", pool)
        with pytest.raises(InvalidSignatureError):
            ingestor.receive(b'{"type":"sync"}', "bad")
        assert pool.queue.qsize() == 0

    def test_malformed_body(self):
        ingestor = WebhookIngestor("s3cret", self._pool())
        body = b"not json"
        with pytest.raises(InvalidPayloadError):
            ingestor.receive(body, compute_signature("s3cret", body))

    @pytest.mark.parametrize("body", [b'["sync"]', b'{"providerConfigKey": "github"}', b'{"type": 7}'])
    def test_body_without_event_type(self, body):
        pool = self._pool()
        with pytest.raises(InvalidPayloadError):
            WebhookIngestor("s3cret", pool).receive(body, compute_signature("s3cret", body))
        assert pool.queue.qsize() == 0

    def test_unknown_shape_is_still_queued(self):
        pool = self._pool()
        body = b'{"type":"forward"}'
        job = WebhookIngestor("s3cret", pool).receive(body, compute_signature("s3cret", body))
        assert job.event_kind == "forward"
        assert pool.queue.qsize() == 1

    def test_valid_event_is_queued(self):
        pool = self._pool()
        body, headers = signed(SYNC_EVENT, secret="s3cret")
        job = WebhookIngestor("s3cret", pool).receive(body, headers["X-Webhook-Signature"])
        assert job.event_kind == "sync"
        assert pool.queue.qsize() == 1


class TestWebhookEndpoint:
    def test_invalid_signature_is_rejected(self, api_client, fake_client, session_factory):
        fake_client.add_page("github", "c1", "GithubIssue", [{"id": "1", "number": 1, "state": "open", "title": "Bug"}])
        body, _ = signed(SYNC_EVENT)

        response = api_client.post("/webhooks", content=body, headers={"X-Webhook-Signature": "forged"})

        assert response.status_code == 400
        assert response.json() == {"error": "invalid_signature"}
        drain(api_client)
        assert fake_client.fetch_calls == []
        with session_factory() as session:
            assert UnifiedObjectRepository(session).count() == 0

    def test_missing_signature_is_rejected(self, api_client):
        body, _ = signed(SYNC_EVENT)
        response = api_client.post("/webhooks", content=body)
        assert response.status_code == 400

    def test_valid_sync_event_creates_objects(self, api_client, fake_client, session_factory):
        fake_client.add_page(
            "github",
            "c1",
            "GithubIssue",
            [
                {"id": "101", "number": 1, "state": "open", "title": "Crash on start"},
                {"id": "102", "number": 2, "state": "closed", "title": "Typo in README"},
            ],
        )
        body, headers = signed(SYNC_EVENT)

        response = api_client.post("/webhooks", content=body, headers=headers)
        assert response.status_code == 200
        assert response.json() == {"received": True}

        drain(api_client)
        with session_factory() as session:
            objects = UnifiedObjectRepository(session).list_objects(provider="github", connection_id="c1")
            assert sorted(o.external_id for o in objects) == ["101", "102"]
            assert {o.type for o in objects} == {"issue"}

    def test_redelivery_does_not_duplicate(self, api_client, fake_client, session_factory):
        fake_client.add_page("github", "c1", "GithubIssue", [{"id": "101", "number": 1, "state": "open", "title": "Bug"}])
        body, headers = signed(SYNC_EVENT)

        for _ in range(3):
            assert api_client.post("/webhooks", content=body, headers=headers).status_code == 200
        drain(api_client)

        with session_factory() as session:
            assert UnifiedObjectRepository(session).count(provider="github") == 1

    def test_modified_after_is_forwarded(self, api_client, fake_client):
        body, headers = signed({**SYNC_EVENT, "modifiedAfter": "2026-05-01T12:00:00Z"})

        api_client.post("/webhooks", content=body, headers=headers)
        drain(api_client)

        assert fake_client.fetch_calls[0]["modified_after"].year == 2026

    def test_unknown_event_kind_is_dropped(self, api_client, fake_client):
        body, headers = signed({**SYNC_EVENT, "type": "forward"})

        assert api_client.post("/webhooks", content=body, headers=headers).status_code == 200
        drain(api_client)

        assert fake_client.fetch_calls == []
        assert len(app.state.worker_pool.dead_letters) == 0

    def test_unknown_event_with_minimal_shape_is_acknowledged(self, api_client, fake_client):
        body, headers = signed({"type": "forward"})

        response = api_client.post("/webhooks", content=body, headers=headers)
        assert response.status_code == 200
        assert response.json() == {"received": True}
        drain(api_client)

        assert fake_client.fetch_calls == []
        assert len(app.state.worker_pool.dead_letters) == 0

    def test_known_event_with_bad_shape_is_dead_lettered(self, api_client, fake_client):
        body, headers = signed({"type": "sync", "success": True})

        assert api_client.post("/webhooks", content=body, headers=headers).status_code == 200
        drain(api_client)

        assert fake_client.fetch_calls == []
        dead = list(app.state.worker_pool.dead_letters)
        assert len(dead) == 1
        assert dead[0].job.event_kind == "sync"

    def test_connection_created_records_user_and_resyncs(self, api_client, fake_client, session_factory):
        with session_factory() as session:
            repo = UnifiedObjectRepository(session)
            repo.create(make_candidate("old-file", connection_id="c9"))
            repo.create(make_candidate("other", connection_id="c10"))

        body, headers = signed(
            {
                "type": "auth",
                "operation": "creation",
                "success": True,
                "providerConfigKey": "google-drive",
                "connectionId": "c9",
                "endUser": {"endUserId": "u1", "email": "ada@example.com"},
            }
        )
        assert api_client.post("/webhooks", content=body, headers=headers).status_code == 200
        drain(api_client)

        with session_factory() as session:
            connection = session.execute(select(UserConnection)).scalars().one()
            assert (connection.end_user_id, connection.connection_id) == ("u1", "c9")
            repo = UnifiedObjectRepository(session)
            assert repo.count(connection_id="c9") == 0
            assert repo.count(connection_id="c10") == 1

        assert fake_client.triggered == [
            {"provider": "google-drive", "syncs": ["documents"], "connection_id": "c9", "full_resync": True}
        ]

    def test_failed_auth_is_ignored(self, api_client, fake_client, session_factory):
        body, headers = signed(
            {"type": "auth", "operation": "creation", "success": False, "providerConfigKey": "google-drive", "connectionId": "c9"}
        )
        api_client.post("/webhooks", content=body, headers=headers)
        drain(api_client)

        assert fake_client.triggered == []
        with session_factory() as session:
            assert session.execute(select(UserConnection)).scalars().all() == []
