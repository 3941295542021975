"""Slack workspace users, stored as contacts."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from unified_sync.schemas.normalized import NormalizedData
from .base import BaseNormalizer


class SlackNormalizer(BaseNormalizer):
    name = "slack"

    def normalize(self, record: Mapping[str, Any], model: Optional[str] = None) -> NormalizedData:
        # Slack exposes no per-user web URL
        return NormalizedData(
            type="contact",
            title=self.nested(record, "profile", "display_name") or record.get("name") or "Unnamed User",
            description=self.nested(record, "profile", "real_name") or None,
            source_url=None,
            metadata_normalized={
                "email": self.nested(record, "profile", "email"),
                "avatar": self.nested(record, "profile", "image_original"),
                "isBot": bool(record.get("is_bot")),
                "teamId": record.get("team_id") or None,
            },
        )
