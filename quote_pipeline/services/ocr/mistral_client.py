"""Mistral OCR HTTP client."""

import base64
import time
from typing import Any, Dict

import httpx

from quote_pipeline.core.exceptions import APIClientError, APITimeoutError, OCRExtractionError
from quote_pipeline.utils.logging import get_logger

LOGGER = get_logger(__name__)


class MistralOCRClient:
    """Thin client over the Mistral OCR endpoint.

    Each call is a single attempt; retries belong to the workflow engine so
    that every attempt is visible in workflow history.

    Attributes:
        http_client: Shared httpx client (owned by the client cache)
        api_key: Mistral API key
        api_url: Mistral OCR endpoint URL
        model: OCR model name
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str,
        api_url: str = "https://api.mistral.ai/v1/ocr",
        model: str = "mistral-ocr-latest",
    ):
        self.http_client = http_client
        self.api_key = api_key
        self.api_url = api_url
        self.model = model

    @staticmethod
    def to_data_url(content: bytes, mime: str) -> str:
        encoded = base64.b64encode(content).decode("ascii")
        return f"data:{mime};base64,{encoded}"

    async def process_document(self, content: bytes, mime: str) -> Dict[str, Any]:
        """Send a document to Mistral OCR.

        Args:
            content: Raw document bytes
            mime: Document MIME type

        Returns:
            Raw OCR response (``{"pages": [{"index", "markdown", ...}], ...}``)

        Raises:
            APITimeoutError: If the request times out
            APIClientError: If the API returns an error or is unreachable
            OCRExtractionError: If the response is not the expected shape
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model,
            "document": {
                "type": "document_url",
                "document_url": self.to_data_url(content, mime),
            },
            "include_image_base64": False,
        }

        start = time.time()
        try:
            response = await self.http_client.post(self.api_url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise APITimeoutError(f"Mistral OCR timed out: {e}", original_error=e) from e
        except httpx.HTTPStatusError as e:
            LOGGER.error(
                f"Mistral OCR API error response: {e.response.text[:500]}",
                extra={"status_code": e.response.status_code},
            )
            raise APIClientError(
                f"Mistral OCR API returned error: {e.response.status_code}", original_error=e
            ) from e
        except httpx.RequestError as e:
            raise APIClientError(f"Failed to call Mistral OCR API: {e}", original_error=e) from e

        result = response.json()
        if not isinstance(result, dict) or not isinstance(result.get("pages"), list):
            raise OCRExtractionError("Mistral OCR response has no pages")

        LOGGER.debug(
            "Mistral OCR API call successful",
            extra={
                "pages_processed": len(result["pages"]),
                "processing_time": round(time.time() - start, 2),
            },
        )
        return result
