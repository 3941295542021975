"""Jira issues and projects."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from unified_sync.schemas.normalized import NormalizedData
from .base import UNTITLED, BaseNormalizer


class JiraNormalizer(BaseNormalizer):
    """Issues by default; project records when the model name says so."""

    name = "jira"

    def normalize(self, record: Mapping[str, Any], model: Optional[str] = None) -> NormalizedData:
        if model and "project" in model.lower():
            return self._project(record)
        return self._issue(record)

    def _issue(self, record: Mapping[str, Any]) -> NormalizedData:
        comments = record.get("comments")
        return NormalizedData(
            type="issue",
            title=record.get("summary") or UNTITLED,
            description=record.get("description") or None,
            source_url=self.first(record, "webUrl", "url"),
            metadata_normalized={
                "key": record.get("key") or None,
                "issueType": record.get("issueType") or None,
                "status": record.get("status") or None,
                "assignee": record.get("assignee") or None,
                "projectKey": record.get("projectKey") or None,
                "projectName": record.get("projectName") or None,
                "commentsCount": len(comments) if isinstance(comments, list) else 0,
            },
        )

    def _project(self, record: Mapping[str, Any]) -> NormalizedData:
        return NormalizedData(
            type="project",
            title=self.first(record, "name", "key") or UNTITLED,
            description=record.get("description") or None,
            source_url=self.first(record, "webUrl", "url"),
            metadata_normalized={
                "key": record.get("key") or None,
                "projectType": record.get("projectTypeKey") or None,
                "lead": self.nested(record, "lead", "displayName"),
            },
        )
