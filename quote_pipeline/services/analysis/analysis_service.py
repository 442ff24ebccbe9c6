"""LLM analysis over OCR page facts."""

from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from quote_pipeline.core.exceptions import AnalysisError, APIClientError
from quote_pipeline.services.analysis.gemini_client import GeminiClient
from quote_pipeline.services.analysis.prompts import ANALYSIS_SYSTEM_PROMPT, build_analysis_prompt
from quote_pipeline.services.analysis.schemas import AnalysisResult
from quote_pipeline.utils.json_parser import parse_json_safely
from quote_pipeline.utils.logging import get_logger

LOGGER = get_logger(__name__)


class AnalysisService:
    """Classifies a quote's pages with a generative model.

    Attributes:
        client: LLM client exposing ``generate_content``, None when unconfigured
        max_excerpt_chars: Per-page excerpt length sent to the model
    """

    def __init__(self, client: Optional[GeminiClient], max_excerpt_chars: int = 1500):
        self.client = client
        self.max_excerpt_chars = max_excerpt_chars

    def build_pages(self, pages: Sequence[Any]) -> List[Dict[str, Any]]:
        """Number OCR pages across files in a stable order."""
        return [
            {
                "index": index,
                "words": page.word_count or 0,
                "excerpt": (page.text_excerpt or "")[: self.max_excerpt_chars],
            }
            for index, page in enumerate(pages)
        ]

    async def analyze(self, pages: Sequence[Dict[str, Any]]) -> AnalysisResult:
        """Run the analysis model over page facts.

        Args:
            pages: ``{"index", "words", "excerpt"}`` dicts

        Returns:
            Validated AnalysisResult

        Raises:
            AnalysisError: If the model fails or returns unusable output
        """
        if self.client is None:
            raise AnalysisError("GEMINI_API_KEY is not configured")
        if not pages:
            raise AnalysisError("No OCR pages to analyze")

        try:
            text = await self.client.generate_content(
                contents=build_analysis_prompt(list(pages)),
                system_instruction=ANALYSIS_SYSTEM_PROMPT,
                generation_config={"response_mime_type": "application/json"},
            )
        except APIClientError as e:
            raise AnalysisError(str(e), original_error=e) from e

        data = parse_json_safely(text)
        if data is None:
            LOGGER.warning("Analysis response is not JSON", extra={"response": text[:500]})
            raise AnalysisError("Analysis response is not valid JSON")

        try:
            result = AnalysisResult.model_validate(data)
        except PydanticValidationError as e:
            raise AnalysisError(f"Analysis response failed validation: {e}", original_error=e) from e

        LOGGER.info(
            "Analysis completed",
            extra={
                "complexity": result.complexity,
                "doc_type": result.doc_type,
                "pages": len(result.pages),
            },
        )
        return result
