"""Unit tests for the analysis service."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest

from quote_pipeline.core.exceptions import AnalysisError, APIClientError
from quote_pipeline.services.analysis import AnalysisService
from quote_pipeline.services.analysis.prompts import build_analysis_prompt

PAGES = [{"index": 0, "words": 500, "excerpt": "Birth certificate"}]


class TestAnalysisService:
    def test_build_pages_numbers_across_files(self):
        service = AnalysisService(None, max_excerpt_chars=4)
        rows = [
            SimpleNamespace(word_count=10, text_excerpt="abcdefgh"),
            SimpleNamespace(word_count=None, text_excerpt=None),
        ]

        assert service.build_pages(rows) == [
            {"index": 0, "words": 10, "excerpt": "abcd"},
            {"index": 1, "words": 0, "excerpt": ""},
        ]

    def test_prompt_includes_page_facts(self):
        prompt = build_analysis_prompt(PAGES)
        assert "Birth certificate" in prompt
        assert "500" in prompt

    @pytest.mark.asyncio
    async def test_valid_output_is_parsed(self, mock_llm_client):
        result = await AnalysisService(mock_llm_client).analyze(PAGES)

        assert result.complexity == "Easy"
        assert result.billing.billable_words == 900
        assert result.page_rows()[0]["words"] == 500
        kwargs = mock_llm_client.generate_content.call_args.kwargs
        assert kwargs["generation_config"] == {"response_mime_type": "application/json"}

    @pytest.mark.asyncio
    async def test_fenced_json_is_accepted(self, mock_llm_client, analysis_payload):
        mock_llm_client.generate_content.return_value = f"```json\n{json.dumps(analysis_payload)}\n```"
        result = await AnalysisService(mock_llm_client).analyze(PAGES)
        assert result.doc_type == "Birth Certificate"

    @pytest.mark.asyncio
    async def test_unconfigured_client_fails(self):
        with pytest.raises(AnalysisError, match="GEMINI_API_KEY"):
            await AnalysisService(None).analyze(PAGES)

    @pytest.mark.asyncio
    async def test_no_pages_fails(self, mock_llm_client):
        with pytest.raises(AnalysisError):
            await AnalysisService(mock_llm_client).analyze([])
        mock_llm_client.generate_content.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_json_output_fails(self):
        client = Mock()
        client.generate_content = AsyncMock(return_value="I am not sure")
        with pytest.raises(AnalysisError, match="not valid JSON"):
            await AnalysisService(client).analyze(PAGES)

    @pytest.mark.asyncio
    async def test_unexpected_keys_fail_validation(self, mock_llm_client, analysis_payload):
        analysis_payload["confidence_note"] = "guess"
        mock_llm_client.generate_content.return_value = json.dumps(analysis_payload)
        with pytest.raises(AnalysisError, match="validation"):
            await AnalysisService(mock_llm_client).analyze(PAGES)

    @pytest.mark.asyncio
    async def test_client_error_is_analysis_error(self):
        client = Mock()
        client.generate_content = AsyncMock(side_effect=APIClientError("quota exceeded"))
        with pytest.raises(AnalysisError, match="quota exceeded"):
            await AnalysisService(client).analyze(PAGES)
