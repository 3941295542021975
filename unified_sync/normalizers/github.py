"""GitHub repositories and issues."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from unified_sync.schemas.normalized import NormalizedData
from .base import UNTITLED, BaseNormalizer


class GithubNormalizer(BaseNormalizer):
    """Repositories and issues share one integration; the record shape decides.

    A record carrying both ``number`` and ``state`` is an issue, anything else
    is treated as a repository.
    """

    name = "github"

    def normalize(self, record: Mapping[str, Any], model: Optional[str] = None) -> NormalizedData:
        if record.get("number") and record.get("state"):
            return self._issue(record)
        return self._repository(record)

    def _issue(self, record: Mapping[str, Any]) -> NormalizedData:
        return NormalizedData(
            type="issue",
            title=record.get("title") or UNTITLED,
            description=record.get("body") or None,
            source_url=record.get("html_url") or None,
            metadata_normalized={
                "state": record.get("state") or "open",
                "number": record.get("number"),
                "author": self.nested(record, "user", "login"),
                "repository": self.nested(record, "repository", "full_name"),
            },
        )

    def _repository(self, record: Mapping[str, Any]) -> NormalizedData:
        return NormalizedData(
            type="repository",
            title=self.first(record, "full_name", "name") or UNTITLED,
            description=record.get("description") or None,
            source_url=record.get("html_url") or None,
            metadata_normalized={
                "stars": record.get("stargazers_count") or 0,
                "language": record.get("language") or None,
                "isPrivate": bool(record.get("private")),
            },
        )
