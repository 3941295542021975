"""Salesforce accounts, contacts and opportunities."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from unified_sync.schemas.normalized import NormalizedData
from .base import UNTITLED, BaseNormalizer


class SalesforceNormalizer(BaseNormalizer):
    """Object type comes from ``attributes.type``; field shape is the fallback."""

    name = "salesforce"

    def __init__(self, instance_url: Optional[str] = None):
        self.instance_url = (instance_url or "").rstrip("/")

    def normalize(self, record: Mapping[str, Any], model: Optional[str] = None) -> NormalizedData:
        record_id = record.get("Id") or record.get("id")
        metadata: Dict[str, Any] = {
            "salesforceId": record_id,
            "owner": record.get("Owner") or None,
        }

        object_type = self._object_type(record)
        if object_type == "account":
            title = record.get("Name") or UNTITLED
            metadata.update(
                industry=record.get("Industry") or None,
                phone=record.get("Phone") or None,
                website=record.get("Website") or None,
            )
        elif object_type == "contact":
            title = self._person_name(record)
            metadata.update(
                email=record.get("Email") or None,
                phone=record.get("Phone") or None,
                account=self.nested(record, "Account", "Name"),
            )
        elif object_type == "opportunity":
            title = record.get("Name") or UNTITLED
            metadata.update(
                amount=record.get("Amount") or None,
                stage=record.get("StageName") or None,
                closeDate=record.get("CloseDate") or None,
                account=self.nested(record, "Account", "Name"),
            )
        else:
            title = self.first(record, "Name", "Title") or UNTITLED

        return NormalizedData(
            type=object_type,
            title=title,
            description=record.get("Description") or None,
            source_url=f"{self.instance_url}/{record_id}" if self.instance_url and record_id else None,
            metadata_normalized=metadata,
        )

    def _object_type(self, record: Mapping[str, Any]) -> str:
        attr_type = self.nested(record, "attributes", "type")
        if attr_type:
            return str(attr_type).lower()
        if record.get("StageName"):
            return "opportunity"
        if record.get("Industry"):
            return "account"
        return "contact"

    @staticmethod
    def _person_name(record: Mapping[str, Any]) -> str:
        if record.get("Name"):
            return record["Name"]
        full = f"{record.get('FirstName') or ''} {record.get('LastName') or ''}".strip()
        return full or UNTITLED
