"""Unified normalized data model produced by every provider normalizer."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class NormalizedData(BaseModel):
    """Provider-independent view of one raw record.

    ``metadata_normalized`` stays flat and JSON-addressable so that schema
    mappings can be applied on top of it.
    """

    model_config = ConfigDict(frozen=True)

    type: str
    title: str
    description: Optional[str] = None
    source_url: Optional[str] = None
    mime_type: Optional[str] = None
    metadata_normalized: Dict[str, Any] = Field(default_factory=dict)
