"""OCR service: fetches a stored document and turns OCR output into page facts."""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx

from quote_pipeline.core.config import OCRSettings
from quote_pipeline.core.exceptions import APIClientError, OCRExtractionError
from quote_pipeline.services.ocr.cache import OCRClientCache
from quote_pipeline.utils.logging import get_logger

LOGGER = get_logger(__name__)

# Markdown image references carry no translatable words
_IMAGE_REF = re.compile(r"!\[[^\]]*\]\([^)]*\)")
GCS_PUBLIC_BASE = "https://storage.googleapis.com"


@dataclass
class OCRPage:
    page_number: int
    word_count: int
    confidence: float
    text: str = ""
    languages: Dict[str, float] = field(default_factory=dict)

    def excerpt(self, max_chars: int) -> str:
        return self.text[:max_chars]


@dataclass
class OCRDocumentResult:
    pages: List[OCRPage]

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def total_words(self) -> int:
        return sum(p.word_count for p in self.pages)

    @property
    def avg_confidence(self) -> float:
        if not self.pages:
            return 0.0
        return round(sum(p.confidence for p in self.pages) / len(self.pages), 4)

    @property
    def languages(self) -> Dict[str, float]:
        """Detected language code -> highest confidence seen on any page."""
        best: Dict[str, float] = {}
        for page in self.pages:
            for code, confidence in page.languages.items():
                if confidence > best.get(code, -1.0):
                    best[code] = confidence
        return best

    @property
    def primary_language(self) -> Optional[str]:
        langs = self.languages
        if not langs:
            return None
        return max(langs.items(), key=lambda item: item[1])[0]


def count_words(text: str) -> int:
    """Whitespace token count of a page's text, ignoring image references."""
    if not text:
        return 0
    return len(_IMAGE_REF.sub(" ", text).split())


def _page_languages(page: Dict[str, Any]) -> Dict[str, float]:
    raw = page.get("languages") or page.get("detected_languages") or []
    languages: Dict[str, float] = {}
    for item in raw:
        if isinstance(item, str):
            code, confidence = item, 0.0
        elif isinstance(item, dict):
            code = item.get("language") or item.get("language_code") or item.get("code")
            confidence = float(item.get("confidence") or 0.0)
        else:
            continue
        if code and confidence >= languages.get(code, 0.0):
            languages[code] = confidence
    return languages


class OCRService:
    """Runs OCR for a single stored document."""

    def __init__(self, clients: OCRClientCache, ocr_settings: OCRSettings):
        self.clients = clients
        self.settings = ocr_settings

    def resolve_download_url(self, storage_uri: str) -> str:
        if storage_uri.startswith("gs://"):
            return f"{GCS_PUBLIC_BASE}/{storage_uri[len('gs://'):]}"
        return storage_uri

    async def download(self, storage_uri: str) -> bytes:
        """Fetch document bytes from an http(s), gs:// or local file URI."""
        if storage_uri.startswith("file://"):
            return Path(storage_uri[len("file://"):]).read_bytes()
        url = self.resolve_download_url(storage_uri)
        if not url.startswith(("http://", "https://")):
            return Path(url).read_bytes()

        client = self.clients.http_client("storage")
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise APIClientError(f"Failed to download document: {e}", original_error=e) from e
        return response.content

    def parse_response(self, response: Dict[str, Any]) -> OCRDocumentResult:
        """Convert a raw OCR response into page facts.

        Pages are numbered from 1 in response order. Pages without a
        vendor confidence use the configured default.
        """
        pages = []
        for position, page in enumerate(response.get("pages") or []):
            text = page.get("markdown") or page.get("text") or ""
            confidence = page.get("confidence")
            if confidence is None:
                confidence = self.settings.default_confidence
            index = page.get("index")
            pages.append(
                OCRPage(
                    page_number=(index + 1) if isinstance(index, int) else position + 1,
                    word_count=count_words(text),
                    confidence=float(confidence),
                    text=text,
                    languages=_page_languages(page),
                )
            )
        return OCRDocumentResult(pages=pages)

    async def extract(self, content: bytes, mime: str) -> OCRDocumentResult:
        """OCR raw document bytes.

        Raises:
            OCRConfigurationError: If the vendor is not configured
            APIClientError: On transient vendor failures
            OCRExtractionError: If the vendor returned no pages
        """
        client = self.clients.get()
        response = await client.process_document(content, mime or "application/pdf")
        result = self.parse_response(response)
        if result.page_count == 0:
            raise OCRExtractionError("OCR returned no pages")

        LOGGER.info(
            "OCR extraction completed successfully",
            extra={
                "page_count": result.page_count,
                "total_words": result.total_words,
                "avg_confidence": result.avg_confidence,
            },
        )
        return result
