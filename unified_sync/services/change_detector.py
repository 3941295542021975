"""Content fingerprints for idempotent updates."""

from __future__ import annotations

import hashlib
import json
from typing import Any, Mapping, Optional, Protocol


class HasContentHash(Protocol):
    content_hash: Optional[str]


def canonical_json(record: Mapping[str, Any]) -> str:
    """Serialize with sorted keys and no whitespace so equal content serializes equally."""
    return json.dumps(record, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


def fingerprint(record: Mapping[str, Any]) -> str:
    """SHA-256 hex digest over the canonical JSON form of a raw record."""
    return hashlib.sha256(canonical_json(record).encode("utf-8")).hexdigest()


def has_changed(existing: Optional[HasContentHash], incoming_hash: str) -> bool:
    if existing is None or not existing.content_hash:
        return True
    return existing.content_hash != incoming_hash
