"""Zoho CRM accounts, contacts and deals."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from unified_sync.schemas.normalized import NormalizedData
from .base import UNTITLED, BaseNormalizer


class ZohoNormalizer(BaseNormalizer):
    """Zoho returns every module through one model, so the fields decide.

    ``Deal_Name`` marks a deal; otherwise ``Account_Name`` with ``Industry`` is
    an account and ``Account_Name`` alone is a contact.
    """

    name = "zoho-crm"

    def __init__(self, domain: str = "com", org_id: Optional[str] = None):
        self.domain = domain or "com"
        self.org_id = org_id

    def normalize(self, record: Mapping[str, Any], model: Optional[str] = None) -> NormalizedData:
        record_id = record.get("id")
        metadata: Dict[str, Any] = {"zohoId": record_id, "owner": record.get("Owner") or None}
        source_url = None

        if "Deal_Name" in record:
            object_type = "deal"
            title = self.value(record.get("Deal_Name")) or record.get("name") or UNTITLED
            source_url = self._link("Deals", record_id)
            metadata.update(
                amount=record.get("Amount") or None,
                stage=self.value(record.get("Stage")),
                closingDate=record.get("Closing_Date") or None,
                account=self.value(record.get("Account_Name")),
            )
        elif "Account_Name" in record and "Industry" in record:
            object_type = "account"
            title = self.value(record.get("Account_Name")) or record.get("name") or UNTITLED
            source_url = self._link("Accounts", record_id)
            metadata.update(
                industry=self.value(record.get("Industry")),
                phone=self.value(record.get("Phone")),
                website=self.value(record.get("Website")),
            )
        elif "Account_Name" in record or "Full_Name" in record:
            object_type = "contact"
            title = self.value(record.get("Full_Name")) or record.get("name") or UNTITLED
            source_url = self._link("Contacts", record_id)
            metadata.update(
                email=self.value(record.get("Email")),
                phone=self.value(record.get("Phone")),
                account=self.value(record.get("Account_Name")),
            )
        else:
            object_type = "contact"
            title = (
                self.value(record.get("Full_Name"))
                or self.value(record.get("Account_Name"))
                or self.value(record.get("Subject"))
                or UNTITLED
            )

        return NormalizedData(
            type=object_type,
            title=title,
            description=self.value(record.get("Description")),
            source_url=source_url,
            metadata_normalized=metadata,
        )

    def _link(self, module: str, record_id: Any) -> Optional[str]:
        if not self.org_id or not record_id:
            return None
        return f"https://crm.zoho.{self.domain}/crm/{self.org_id}/tab/{module}/{record_id}"

    @staticmethod
    def value(field: Any) -> Optional[str]:
        """Zoho lookups arrive either as plain strings or as ``{"name": ..., "id": ...}``."""
        if not field:
            return None
        if isinstance(field, str):
            return field
        if isinstance(field, Mapping) and field.get("name"):
            return field["name"]
        return None
