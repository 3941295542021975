"""Async client for the integration platform (records feed, connections, proxy)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from unified_sync.core.config import Settings
from unified_sync.core.exceptions import IntegrationError
from unified_sync.core.logging import get_logger

log = get_logger("integrations.client")


@dataclass
class RecordsPage:
    records: List[Dict[str, Any]]
    next_cursor: Optional[str] = None


@dataclass
class ConnectionRef:
    connection_id: str
    provider_config_key: str
    metadata: Dict[str, Any] = field(default_factory=dict)


class IntegrationClient:
    """Thin wrapper over the platform's REST API.

    Every transport failure or non-2xx answer surfaces as :class:`IntegrationError`.
    """

    def __init__(
        self,
        base_url: str,
        secret_key: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.secret_key = secret_key
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "IntegrationClient":
        return cls(
            base_url=settings.INTEGRATION_API_URL,
            secret_key=settings.INTEGRATION_SECRET_KEY,
            timeout=settings.INTEGRATION_TIMEOUT_SECONDS,
        )

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------
    async def list_records(
        self,
        provider_config_key: str,
        connection_id: str,
        model: str,
        modified_after: Optional[datetime] = None,
        limit: int = 1000,
        cursor: Optional[str] = None,
    ) -> RecordsPage:
        params: Dict[str, Any] = {"model": model, "limit": limit}
        if modified_after:
            params["modified_after"] = modified_after.astimezone(timezone.utc).isoformat()
        if cursor:
            params["cursor"] = cursor

        data = await self._request(
            "GET",
            "/records",
            params=params,
            headers=self._connection_headers(provider_config_key, connection_id),
        )
        records = data.get("records") or []
        next_cursor = data.get("next_cursor") or data.get("nextCursor")
        return RecordsPage(records=list(records), next_cursor=next_cursor)

    async def iter_records(
        self,
        provider_config_key: str,
        connection_id: str,
        model: str,
        modified_after: Optional[datetime] = None,
        limit: int = 1000,
    ) -> AsyncIterator[RecordsPage]:
        """Yield pages until the platform stops returning a cursor."""
        cursor: Optional[str] = None
        while True:
            page = await self.list_records(
                provider_config_key,
                connection_id,
                model,
                modified_after=modified_after,
                limit=limit,
                cursor=cursor,
            )
            yield page
            if not page.next_cursor or page.next_cursor == cursor:
                break
            cursor = page.next_cursor

    # -------------------------------------------------------------------------
    # Connections
    # -------------------------------------------------------------------------
    async def list_connections(self) -> List[ConnectionRef]:
        data = await self._request("GET", "/connection")
        connections: List[ConnectionRef] = []
        for item in data.get("connections") or []:
            connection_id = item.get("connection_id") or item.get("connectionId")
            provider = item.get("provider_config_key") or item.get("providerConfigKey")
            if not connection_id or not provider:
                log.warning(f"Skipping malformed connection entry: {item}")
                continue
            connections.append(
                ConnectionRef(
                    connection_id=connection_id,
                    provider_config_key=provider,
                    metadata=item.get("metadata") or {},
                )
            )
        return connections

    async def trigger_sync(
        self,
        provider_config_key: str,
        syncs: List[str],
        connection_id: str,
        full_resync: bool = False,
    ) -> None:
        payload: Dict[str, Any] = {
            "provider_config_key": provider_config_key,
            "syncs": syncs,
            "connection_id": connection_id,
        }
        if full_resync:
            payload["sync_mode"] = "full_refresh_and_clear_cache"
        await self._request("POST", "/sync/trigger", json=payload)
        log.info(f"Triggered syncs={syncs} for {provider_config_key} ({connection_id}) full_resync={full_resync}")

    # -------------------------------------------------------------------------
    # Proxy
    # -------------------------------------------------------------------------
    async def proxy_get(
        self,
        provider_config_key: str,
        connection_id: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> bytes:
        """Call a provider endpoint through the platform proxy and return the raw body."""
        async with self._client() as client:
            try:
                resp = await client.get(
                    f"/proxy/{endpoint.lstrip('/')}",
                    params=params,
                    headers=self._connection_headers(provider_config_key, connection_id),
                )
                resp.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise IntegrationError(
                    f"Proxy GET {endpoint} failed with HTTP {exc.response.status_code}",
                    status_code=exc.response.status_code,
                ) from exc
            except httpx.HTTPError as exc:
                raise IntegrationError(f"Proxy GET {endpoint} failed: {exc}") from exc
            return resp.content

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------
    def _client(self) -> httpx.AsyncClient:
        headers = {"Authorization": f"Bearer {self.secret_key}"} if self.secret_key else {}
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
            transport=self._transport,
        )

    @staticmethod
    def _connection_headers(provider_config_key: str, connection_id: str) -> Dict[str, str]:
        return {"Provider-Config-Key": provider_config_key, "Connection-Id": connection_id}

    async def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        async with self._client() as client:
            try:
                resp = await client.request(method, path, **kwargs)
                resp.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise IntegrationError(
                    f"{method} {path} failed with HTTP {exc.response.status_code}: {exc.response.text[:200]}",
                    status_code=exc.response.status_code,
                ) from exc
            except httpx.HTTPError as exc:
                raise IntegrationError(f"{method} {path} failed: {exc}") from exc

        if not resp.content:
            return {}
        return resp.json()
