"""Abstract normalizer interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

from unified_sync.schemas.normalized import NormalizedData

UNTITLED = "Untitled"


class BaseNormalizer(ABC):
    """Maps one provider's raw records onto :class:`NormalizedData`.

    Implementations must be pure: no I/O, no mutation of ``record``, and the
    same input always yields the same output.
    """

    name: str

    @abstractmethod
    def normalize(self, record: Mapping[str, Any], model: Optional[str] = None) -> NormalizedData:
        """Normalize a raw record; ``model`` is the integration model name when known."""

    @staticmethod
    def first(record: Mapping[str, Any], *keys: str) -> Any:
        """Return the first truthy value among ``keys``."""
        for key in keys:
            value = record.get(key)
            if value:
                return value
        return None

    @staticmethod
    def nested(record: Mapping[str, Any], *path: str) -> Any:
        value: Any = record
        for key in path:
            if not isinstance(value, Mapping):
                return None
            value = value.get(key)
        return value
