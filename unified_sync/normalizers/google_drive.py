"""Google Drive files and folders."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from unified_sync.schemas.normalized import NormalizedData
from .base import UNTITLED, BaseNormalizer

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


class GoogleDriveNormalizer(BaseNormalizer):
    name = "google-drive"

    def normalize(self, record: Mapping[str, Any], model: Optional[str] = None) -> NormalizedData:
        mime_type = record.get("mimeType") or None
        title = self.first(record, "title", "name") or UNTITLED

        return NormalizedData(
            type="folder" if mime_type == FOLDER_MIME_TYPE else "file",
            title=title,
            description=record.get("description") or None,
            source_url=self.first(record, "url", "webViewLink"),
            mime_type=mime_type,
            metadata_normalized={
                "fileName": title,
                "mimeType": mime_type,
                "size": record.get("size") or None,
                "modifiedTime": self.first(record, "modifiedTime", "updatedAt"),
            },
        )
