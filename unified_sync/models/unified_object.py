"""Canonical store of every external entity seen by the sync engine."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, String, Text, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from unified_sync.models.base import Base, JSONType

STATE_ACTIVE = "active"
STATE_DELETED = "deleted"


class UnifiedObject(Base):
    """One external record, addressed by ``(provider, external_id)``.

    ``canonical_url`` is assigned on insert and never rewritten by sync updates.
    Rows are soft-deleted (``state = deleted``) and never purged by a sync pass.
    """

    __tablename__ = "unified_objects"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    provider: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    connection_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    external_id: Mapped[str] = mapped_column(String(255), nullable=False)

    type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    mime_type: Mapped[str | None] = mapped_column(String(255), nullable=True)

    metadata_raw: Mapped[dict] = mapped_column(JSONType, nullable=False)
    metadata_normalized: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    content_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    canonical_url: Mapped[str] = mapped_column(String(512), nullable=False)
    slug: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)
    state: Mapped[str] = mapped_column(String(20), nullable=False, default=STATE_ACTIVE, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("provider", "external_id", name="uq_unified_objects_provider_external_id"),
        Index("ix_unified_objects_connection_provider_type", "connection_id", "provider", "type"),
    )

    @property
    def is_deleted(self) -> bool:
        return self.state == STATE_DELETED
