"""Per-endpoint OCR client cache."""

from typing import Dict, Optional

import httpx

from quote_pipeline.core.config import OCRSettings
from quote_pipeline.core.exceptions import OCRConfigurationError
from quote_pipeline.services.ocr.mistral_client import MistralOCRClient
from quote_pipeline.utils.logging import get_logger

LOGGER = get_logger(__name__)


class OCRClientCache:
    """Holds one OCR client per (endpoint, location) for the life of a worker.

    Built once by the worker's dependency context and passed to the OCR
    service; clients are never created per call.
    """

    def __init__(self, ocr_settings: OCRSettings):
        self.settings = ocr_settings
        self._clients: Dict[str, MistralOCRClient] = {}
        self._http_clients: Dict[str, httpx.AsyncClient] = {}

    def validate(self) -> None:
        """Raise OCRConfigurationError when the OCR vendor is not configured."""
        if not self.settings.mistral_api_key:
            raise OCRConfigurationError("MISTRAL_API_KEY is not configured")
        if not self.settings.endpoint.startswith(("http://", "https://")):
            raise OCRConfigurationError(f"Invalid OCR endpoint: {self.settings.endpoint!r}")

    def http_client(self, key: str) -> httpx.AsyncClient:
        client = self._http_clients.get(key)
        if client is None:
            client = httpx.AsyncClient(timeout=self.settings.timeout)
            self._http_clients[key] = client
        return client

    def get(self, location: Optional[str] = None) -> MistralOCRClient:
        """Return the cached OCR client for a location, creating it on first use."""
        self.validate()
        loc = location or self.settings.location
        key = f"{self.settings.endpoint}|{loc}"
        client = self._clients.get(key)
        if client is None:
            LOGGER.info(
                "Creating OCR client",
                extra={"endpoint": self.settings.endpoint, "location": loc},
            )
            client = MistralOCRClient(
                http_client=self.http_client(key),
                api_key=self.settings.mistral_api_key,
                api_url=self.settings.endpoint,
                model=self.settings.mistral_ocr_model,
            )
            self._clients[key] = client
        return client

    def __len__(self) -> int:
        return len(self._clients)

    async def aclose(self) -> None:
        for client in self._http_clients.values():
            await client.aclose()
        self._http_clients.clear()
        self._clients.clear()
