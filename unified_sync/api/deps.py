"""API dependencies"""

from typing import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from unified_sync.core.db import SessionLocal
from unified_sync.integrations.client import IntegrationClient
from unified_sync.normalizers.registry import NormalizerRegistry
from unified_sync.services.webhook_service import WebhookIngestor
from unified_sync.services.worker import WorkerPool


def get_db() -> Generator[Session, None, None]:
    """Database dependency"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Long-lived collaborators are built once in the lifespan and kept on app.state


def get_client(request: Request) -> IntegrationClient:
    return request.app.state.integration_client


def get_registry(request: Request) -> NormalizerRegistry:
    return request.app.state.registry


def get_worker_pool(request: Request) -> WorkerPool:
    return request.app.state.worker_pool


def get_ingestor(request: Request) -> WebhookIngestor:
    return request.app.state.ingestor
