"""Integration platform client tests (httpx mock transport)"""

import json
from datetime import datetime, timezone

import httpx
import pytest

from unified_sync.core.exceptions import IntegrationError
from unified_sync.integrations.client import IntegrationClient


def make_client(handler, secret_key="sk-test"):
    return IntegrationClient("https://platform.test/", secret_key=secret_key, transport=httpx.MockTransport(handler))


class TestRecords:
    @pytest.mark.asyncio
    async def test_list_records_sends_connection_headers(self):
        seen = {}

        def handler(request):
            seen["headers"] = request.headers
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"records": [{"id": "1"}], "next_cursor": "abc"})

        page = await make_client(handler).list_records(
            "github",
            "c1",
            "GithubIssue",
            modified_after=datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc),
        )

        assert page.records == [{"id": "1"}]
        assert page.next_cursor == "abc"
        assert seen["headers"]["Provider-Config-Key"] == "github"
        assert seen["headers"]["Connection-Id"] == "c1"
        assert seen["headers"]["Authorization"] == "Bearer sk-test"
        assert seen["params"]["model"] == "GithubIssue"
        assert seen["params"]["modified_after"].startswith("2026-05-01T12:00:00")

    @pytest.mark.asyncio
    async def test_iter_records_follows_cursor(self):
        pages = {
            None: {"records": [{"id": "1"}], "next_cursor": "p2"},
            "p2": {"records": [{"id": "2"}], "nextCursor": "p3"},
            "p3": {"records": [{"id": "3"}]},
        }

        def handler(request):
            return httpx.Response(200, json=pages[request.url.params.get("cursor")])

        ids = []
        async for page in make_client(handler).iter_records("github", "c1", "GithubIssue"):
            ids.extend(r["id"] for r in page.records)

        assert ids == ["1", "2", "3"]

    @pytest.mark.asyncio
    async def test_repeated_cursor_stops_paging(self):
        calls = []

        def handler(request):
            calls.append(request.url.params.get("cursor"))
            return httpx.Response(200, json={"records": [], "next_cursor": "same"})

        async for _ in make_client(handler).iter_records("github", "c1", "GithubIssue"):
            pass

        assert calls == [None, "same"]

    @pytest.mark.asyncio
    async def test_http_error_raises_integration_error(self):
        def handler(request):
            return httpx.Response(503, text="upstream down")

        with pytest.raises(IntegrationError) as excinfo:
            await make_client(handler).list_records("github", "c1", "GithubIssue")
        assert excinfo.value.status_code == 503

    @pytest.mark.asyncio
    async def test_transport_error_raises_integration_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(IntegrationError):
            await make_client(handler).list_records("github", "c1", "GithubIssue")


class TestConnectionsAndProxy:
    @pytest.mark.asyncio
    async def test_list_connections_skips_malformed_entries(self):
        def handler(request):
            return httpx.Response(
                200,
                json={
                    "connections": [
                        {"connection_id": "c1", "provider_config_key": "github"},
                        {"connectionId": "c2", "providerConfigKey": "slack", "metadata": {"team": "x"}},
                        {"connection_id": "c3"},
                    ]
                },
            )

        connections = await make_client(handler).list_connections()

        assert [(c.connection_id, c.provider_config_key) for c in connections] == [("c1", "github"), ("c2", "slack")]
        assert connections[1].metadata == {"team": "x"}

    @pytest.mark.asyncio
    async def test_trigger_full_resync(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200)

        await make_client(handler).trigger_sync("google-drive", ["documents"], "c9", full_resync=True)

        assert seen["path"] == "/sync/trigger"
        assert seen["body"]["sync_mode"] == "full_refresh_and_clear_cache"
        assert seen["body"]["syncs"] == ["documents"]

    @pytest.mark.asyncio
    async def test_proxy_get_returns_raw_body(self):
        def handler(request):
            assert request.url.path == "/proxy/drive/v3/files/f1/export"
            return httpx.Response(200, content=b"plain text body")

        body = await make_client(handler).proxy_get("google-drive", "c1", "/drive/v3/files/f1/export")
        assert body == b"plain text body"

    @pytest.mark.asyncio
    async def test_proxy_get_error(self):
        def handler(request):
            return httpx.Response(404)

        with pytest.raises(IntegrationError) as excinfo:
            await make_client(handler).proxy_get("google-drive", "c1", "/missing")
        assert excinfo.value.status_code == 404
