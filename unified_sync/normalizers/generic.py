"""Fallback for providers without a dedicated normalizer."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from unified_sync.schemas.normalized import NormalizedData
from .base import UNTITLED, BaseNormalizer


class GenericNormalizer(BaseNormalizer):
    """Heuristic mapping using common field names."""

    name = "generic"

    def normalize(self, record: Mapping[str, Any], model: Optional[str] = None) -> NormalizedData:
        return NormalizedData(
            type=model.lower() if model else "record",
            title=self.first(record, "name", "title", "subject") or UNTITLED,
            description=self.first(record, "description", "body"),
            source_url=self.first(record, "url", "html_url", "webUrl"),
            mime_type=record.get("mimeType") or None,
            metadata_normalized={},
        )
