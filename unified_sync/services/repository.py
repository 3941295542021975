"""Unified object repository: the only writer of ``unified_objects``."""

from __future__ import annotations

import enum
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.orm import Session

from unified_sync.core.db import dialect_insert
from unified_sync.core.logging import get_logger
from unified_sync.models.unified_object import STATE_ACTIVE, STATE_DELETED, UnifiedObject
from unified_sync.schemas.normalized import NormalizedData

log = get_logger("repository")

# Columns a sync update may overwrite. canonical_url, created_at, state and id are never touched.
MUTABLE_COLUMNS = (
    "connection_id",
    "type",
    "title",
    "description",
    "source_url",
    "mime_type",
    "metadata_raw",
    "metadata_normalized",
    "content_hash",
)


class UpsertOutcome(str, enum.Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class ObjectCandidate:
    """Everything needed to write one object, before an id exists."""

    provider: str
    connection_id: str
    external_id: str
    normalized: NormalizedData
    metadata_raw: Dict[str, Any]
    content_hash: str
    slug: Optional[str] = None

    def column_values(self) -> Dict[str, Any]:
        return {
            "connection_id": self.connection_id,
            "type": self.normalized.type,
            "title": self.normalized.title,
            "description": self.normalized.description,
            "source_url": self.normalized.source_url,
            "mime_type": self.normalized.mime_type,
            "metadata_raw": self.metadata_raw,
            "metadata_normalized": dict(self.normalized.metadata_normalized),
            "content_hash": self.content_hash,
        }


def canonical_url_for(object_id: uuid.UUID, slug: Optional[str] = None) -> str:
    return f"/item/{slug}" if slug else f"/item/{object_id}"


def slugify(title: str, object_id: uuid.UUID | str) -> str:
    """Readable slug with the id's last 6 characters appended for uniqueness."""
    base = re.sub(r"[^a-z0-9]+", "-", (title or "untitled").lower()).strip("-") or "untitled"
    return f"{base}-{str(object_id)[-6:]}"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class UnifiedObjectRepository:
    """Create, update, soft-delete and look up unified objects.

    Uniqueness of ``(provider, external_id)`` is enforced by the database and
    every write goes through a single statement, so concurrent passes over the
    same record converge without in-process locking.
    """

    def __init__(self, db: Session):
        self.db = db

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------
    def find_by_provider_external_id(self, provider: str, external_id: str) -> Optional[UnifiedObject]:
        stmt = select(UnifiedObject).where(
            UnifiedObject.provider == provider,
            UnifiedObject.external_id == external_id,
        )
        return self.db.execute(stmt.execution_options(populate_existing=True)).scalar_one_or_none()

    def get(self, object_id: uuid.UUID) -> Optional[UnifiedObject]:
        return self.db.get(UnifiedObject, object_id, populate_existing=True)

    def get_by_id_or_slug(self, id_or_slug: str) -> Optional[UnifiedObject]:
        try:
            object_id = uuid.UUID(id_or_slug)
        except ValueError:
            object_id = None

        conditions = [UnifiedObject.slug == id_or_slug]
        if object_id is not None:
            conditions.append(UnifiedObject.id == object_id)
        stmt = select(UnifiedObject).where(or_(*conditions)).limit(1)
        return self.db.execute(stmt).scalar_one_or_none()

    def list_objects(
        self,
        provider: Optional[str] = None,
        connection_id: Optional[str] = None,
        object_type: Optional[str] = None,
        state: Optional[str] = None,
        exclude_types: Optional[List[str]] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[UnifiedObject]:
        stmt = self._filtered(select(UnifiedObject), provider, connection_id, object_type, state, exclude_types)
        stmt = stmt.order_by(UnifiedObject.updated_at.desc()).limit(limit).offset(offset)
        return list(self.db.execute(stmt).scalars().all())

    def count(
        self,
        provider: Optional[str] = None,
        connection_id: Optional[str] = None,
        object_type: Optional[str] = None,
        state: Optional[str] = None,
        exclude_types: Optional[List[str]] = None,
    ) -> int:
        stmt = self._filtered(
            select(func.count()).select_from(UnifiedObject), provider, connection_id, object_type, state, exclude_types
        )
        return self.db.execute(stmt).scalar() or 0

    def counts_by(self, column: str, state: Optional[str] = STATE_ACTIVE) -> Dict[str, int]:
        """Object counts grouped by ``provider`` or ``type``."""
        group = getattr(UnifiedObject, column)
        stmt = select(group, func.count()).group_by(group)
        if state:
            stmt = stmt.where(UnifiedObject.state == state)
        return {key: total for key, total in self.db.execute(stmt).all()}

    @staticmethod
    def _filtered(stmt, provider, connection_id, object_type, state, exclude_types=None):
        if provider:
            stmt = stmt.where(UnifiedObject.provider == provider)
        if connection_id:
            stmt = stmt.where(UnifiedObject.connection_id == connection_id)
        if object_type:
            stmt = stmt.where(UnifiedObject.type == object_type)
        if state:
            stmt = stmt.where(UnifiedObject.state == state)
        if exclude_types:
            stmt = stmt.where(UnifiedObject.type.not_in(exclude_types))
        return stmt

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------
    def upsert(self, candidate: ObjectCandidate) -> Tuple[UpsertOutcome, Optional[UnifiedObject]]:
        """Insert, or update on ``(provider, external_id)`` conflict when the hash differs.

        The conflict branch leaves ``canonical_url``, ``created_at`` and ``state``
        untouched, so a racing second create becomes a plain content update.
        """
        now = _now()
        new_id = uuid.uuid4()
        values = candidate.column_values()
        values.update(
            id=new_id,
            provider=candidate.provider,
            external_id=candidate.external_id,
            slug=candidate.slug,
            canonical_url=canonical_url_for(new_id, candidate.slug),
            state=STATE_ACTIVE,
            created_at=now,
            updated_at=now,
        )

        stmt = dialect_insert(self.db, UnifiedObject).values(**values)
        set_ = {column: stmt.excluded[column] for column in MUTABLE_COLUMNS}
        set_["updated_at"] = now
        stmt = stmt.on_conflict_do_update(
            index_elements=[UnifiedObject.provider, UnifiedObject.external_id],
            set_=set_,
            where=UnifiedObject.content_hash != stmt.excluded.content_hash,
        ).returning(UnifiedObject.id)

        returned_id = self.db.execute(stmt).scalar_one_or_none()
        self.db.commit()

        if returned_id is None:
            return UpsertOutcome.UNCHANGED, self.find_by_provider_external_id(candidate.provider, candidate.external_id)

        outcome = UpsertOutcome.CREATED if returned_id == new_id else UpsertOutcome.UPDATED
        return outcome, self.get(returned_id)

    def create(self, candidate: ObjectCandidate) -> UnifiedObject:
        """Create a new object; if the key already exists the row is updated instead."""
        outcome, obj = self.upsert(candidate)
        if outcome is not UpsertOutcome.CREATED:
            log.debug(f"Create raced on {candidate.provider}/{candidate.external_id}; outcome={outcome.value}")
        return obj

    def update(self, object_id: uuid.UUID, candidate: ObjectCandidate) -> Optional[UnifiedObject]:
        """Overwrite content fields of an existing object; canonical_url is carried forward."""
        stmt = (
            update(UnifiedObject)
            .where(
                UnifiedObject.id == object_id,
                UnifiedObject.content_hash != candidate.content_hash,
            )
            .values(**candidate.column_values(), updated_at=_now())
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        self.db.commit()
        if result.rowcount == 0:
            log.debug(f"Update of {object_id} was a no-op (hash unchanged or row missing)")
        return self.get(object_id)

    def mark_deleted(self, provider: str, external_id: str) -> bool:
        """Soft-delete; only an active row transitions, so repeated deliveries are no-ops."""
        stmt = (
            update(UnifiedObject)
            .where(
                UnifiedObject.provider == provider,
                UnifiedObject.external_id == external_id,
                UnifiedObject.state == STATE_ACTIVE,
            )
            .values(state=STATE_DELETED, updated_at=_now())
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        self.db.commit()
        return result.rowcount > 0

    def reactivate(self, object_id: uuid.UUID) -> Optional[UnifiedObject]:
        """Explicitly bring a soft-deleted object back; sync passes never do this."""
        stmt = (
            update(UnifiedObject)
            .where(UnifiedObject.id == object_id, UnifiedObject.state == STATE_DELETED)
            .values(state=STATE_ACTIVE, updated_at=_now())
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        self.db.commit()
        if result.rowcount:
            log.info(f"Reactivated object {object_id}")
        return self.get(object_id)

    def attach_summary(self, object_id: uuid.UUID, description: Optional[str], summary: Optional[str]) -> None:
        values: Dict[str, Any] = {"summary": summary}
        if description:
            values["description"] = description
        stmt = (
            update(UnifiedObject)
            .where(UnifiedObject.id == object_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.db.execute(stmt)
        self.db.commit()

    def assign_slug(self, object_id: uuid.UUID, slug: str) -> None:
        """Set the secondary slug key; canonical_url keeps its original value."""
        stmt = (
            update(UnifiedObject)
            .where(UnifiedObject.id == object_id, UnifiedObject.slug.is_(None))
            .values(slug=slug)
            .execution_options(synchronize_session=False)
        )
        self.db.execute(stmt)
        self.db.commit()

    def purge_for_connection(self, connection_id: str, provider: str, object_type: Optional[str] = None) -> int:
        """Hard-delete a connection's objects. Used on reconnect and disconnect, never by sync passes."""
        stmt = delete(UnifiedObject).where(
            UnifiedObject.connection_id == connection_id,
            UnifiedObject.provider == provider,
        )
        if object_type:
            stmt = stmt.where(UnifiedObject.type == object_type)
        result = self.db.execute(stmt.execution_options(synchronize_session=False))
        self.db.commit()
        log.info(f"Purged {result.rowcount} objects for {provider}/{connection_id} type={object_type or '*'}")
        return result.rowcount

    def objects_without_slug(self, limit: int = 500) -> List[UnifiedObject]:
        stmt = select(UnifiedObject).where(UnifiedObject.slug.is_(None)).limit(limit)
        return list(self.db.execute(stmt).scalars().all())
