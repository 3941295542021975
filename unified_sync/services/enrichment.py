"""Document enrichment: download newly created documents and attach a summary."""

from __future__ import annotations

import io
import re
import zipfile
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from unified_sync.core.exceptions import EnrichmentError, IntegrationError
from unified_sync.core.logging import get_logger
from unified_sync.integrations.client import IntegrationClient

log = get_logger("enrichment")

# Google Workspace types and the plain-text format each is exported as
GOOGLE_EXPORT_MIME_TYPES: Dict[str, str] = {
    "application/vnd.google-apps.document": "text/plain",
    "application/vnd.google-apps.spreadsheet": "text/csv",
    "application/vnd.google-apps.presentation": "text/plain",
}

ONEDRIVE_DOCUMENT_MIME_TYPES = {
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "application/msword",
    "application/vnd.ms-excel",
    "application/vnd.ms-powerpoint",
}

ONEDRIVE_PROVIDERS = {"one-drive", "one-drive-personal"}

_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]+")
_XML_TAG_RE = re.compile(r"<[^>]+>")


@dataclass(frozen=True)
class EnrichmentResult:
    description: Optional[str]
    summary: Optional[str]


def is_google_document(mime_type: Optional[str]) -> bool:
    return bool(mime_type) and mime_type in GOOGLE_EXPORT_MIME_TYPES


def is_onedrive_document(provider: str, mime_type: Optional[str]) -> bool:
    return provider in ONEDRIVE_PROVIDERS and bool(mime_type) and mime_type in ONEDRIVE_DOCUMENT_MIME_TYPES


def should_enrich(provider: str, mime_type: Optional[str]) -> bool:
    return (provider == "google-drive" and is_google_document(mime_type)) or is_onedrive_document(provider, mime_type)


class SimpleSummarizer:
    """Extractive summary: leading sentences up to a word budget."""

    def __init__(self, max_words: int = 150):
        self.max_words = max_words

    def summarize(self, text: str) -> str:
        text = (text or "").strip()
        if not text:
            return ""

        sentences = _SENTENCE_RE.findall(text) or [text]
        summary = ""
        word_count = 0
        for sentence in sentences:
            words = sentence.split()
            if word_count + len(words) > self.max_words:
                break
            summary += sentence
            word_count += len(words)

        # ~6 characters per word when even the first sentence is over budget
        return summary.strip() or text[: self.max_words * 6]


def extract_office_text(content: bytes) -> str:
    """Pull visible text out of an Office Open XML package."""
    try:
        with zipfile.ZipFile(io.BytesIO(content)) as archive:
            parts = [
                name
                for name in archive.namelist()
                if name == "word/document.xml"
                or (name.startswith("ppt/slides/slide") and name.endswith(".xml"))
                or name == "xl/sharedStrings.xml"
            ]
            chunks = [_XML_TAG_RE.sub(" ", archive.read(name).decode("utf-8", errors="ignore")) for name in sorted(parts)]
    except zipfile.BadZipFile:
        return content.decode("utf-8", errors="ignore")
    return re.sub(r"\s+", " ", " ".join(chunks)).strip()


class DocumentEnricher:
    """Fetches document bodies through the integration proxy and summarizes them."""

    def __init__(self, client: IntegrationClient, summarizer: Optional[SimpleSummarizer] = None):
        self.client = client
        self.summarizer = summarizer or SimpleSummarizer()

    def should_enrich(self, provider: str, mime_type: Optional[str]) -> bool:
        return should_enrich(provider, mime_type)

    async def fetch_and_summarize(
        self,
        provider: str,
        connection_id: str,
        external_id: str,
        mime_type: Optional[str],
        metadata_raw: Mapping[str, Any],
    ) -> EnrichmentResult:
        text = await self._fetch_text(provider, connection_id, external_id, mime_type, metadata_raw)
        if not text:
            log.warning(f"No text extracted from {provider}/{external_id}")
            return EnrichmentResult(description=None, summary=None)

        summary = self.summarizer.summarize(text) or None
        log.debug(f"Summarized {provider}/{external_id}: {len(text)} chars -> {len(summary or '')} chars")
        return EnrichmentResult(description=summary, summary=summary)

    async def _fetch_text(
        self,
        provider: str,
        connection_id: str,
        external_id: str,
        mime_type: Optional[str],
        metadata_raw: Mapping[str, Any],
    ) -> str:
        try:
            if provider == "google-drive" and is_google_document(mime_type):
                content = await self.client.proxy_get(
                    provider,
                    connection_id,
                    f"/drive/v3/files/{external_id}/export",
                    params={"mimeType": GOOGLE_EXPORT_MIME_TYPES[mime_type]},
                )
                return content.decode("utf-8", errors="ignore")

            if is_onedrive_document(provider, mime_type):
                drive_id = metadata_raw.get("driveId") or (metadata_raw.get("parentReference") or {}).get("driveId")
                if not drive_id:
                    raise EnrichmentError(f"No driveId in metadata for {provider}/{external_id}")
                content = await self.client.proxy_get(
                    provider,
                    connection_id,
                    f"/drives/{drive_id}/items/{external_id}/content",
                )
                return extract_office_text(content)
        except IntegrationError as exc:
            raise EnrichmentError(f"Download failed for {provider}/{external_id}: {exc}") from exc

        raise EnrichmentError(f"{provider} documents of type {mime_type} cannot be enriched")
