"""Google Calendar events."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from unified_sync.schemas.normalized import NormalizedData
from .base import BaseNormalizer


class GoogleCalendarNormalizer(BaseNormalizer):
    name = "google-calendar"

    def normalize(self, record: Mapping[str, Any], model: Optional[str] = None) -> NormalizedData:
        return NormalizedData(
            type="event",
            title=record.get("summary") or "Untitled Event",
            description=record.get("description") or None,
            source_url=record.get("htmlLink") or None,
            metadata_normalized={
                "start": record.get("start") or None,
                "end": record.get("end") or None,
                "location": record.get("location") or None,
                "attendees": list(record.get("attendees") or []),
            },
        )
