"""Unit tests for the per-quote analysis step."""

import pytest

from quote_pipeline.core.exceptions import APIClientError
from quote_pipeline.database.models import JobStatus, QuoteFileStatus, QuoteStatus
from quote_pipeline.repositories import (
    EventRepository,
    GlmJobRepository,
    GlmPageRepository,
    QuoteFileRepository,
    QuoteRepository,
)
from quote_pipeline.schemas.events import EventName
from quote_pipeline.services.steps import AnalysisStep


@pytest.fixture
def seed_ocr(session_maker, create_quote):
    """Create a quote with one OCR-complete file of two pages."""

    async def _seed(quote_id: int = 42, complete: bool = True):
        await create_quote(quote_id)
        async with session_maker() as session:
            files = QuoteFileRepository(session)
            await files.upsert_file(
                quote_id,
                "file-1",
                status=QuoteFileStatus.OCR_COMPLETE.value if complete else QuoteFileStatus.UPLOADED.value,
                words=900,
            )
            await files.upsert_pages(
                quote_id,
                "file-1",
                [
                    {"page_number": 1, "word_count": 500, "ocr_confidence": 0.98, "text_excerpt": "page one"},
                    {"page_number": 2, "word_count": 400, "ocr_confidence": 0.94, "text_excerpt": "page two"},
                ],
            )
            await session.commit()

    return _seed


class TestFaninState:
    @pytest.mark.asyncio
    async def test_not_ready_without_files(self, deps, create_quote):
        await create_quote(42)
        assert await AnalysisStep(deps).fanin_state(42) == {"total": 0, "pending": [], "ready": False}

    @pytest.mark.asyncio
    async def test_not_ready_while_a_file_is_pending(self, deps, seed_ocr, session_maker):
        await seed_ocr(42)
        async with session_maker() as session:
            await QuoteFileRepository(session).upsert_file(42, "file-2", status=QuoteFileStatus.UPLOADED.value)
            await session.commit()

        state = await AnalysisStep(deps).fanin_state(42)

        assert state == {"total": 2, "pending": ["file-2"], "ready": False}

    @pytest.mark.asyncio
    async def test_ready_when_all_files_complete(self, deps, seed_ocr):
        await seed_ocr(42)
        assert (await AnalysisStep(deps).fanin_state(42))["ready"] is True


class TestAnalysisStep:
    @pytest.mark.asyncio
    async def test_success_persists_classification(self, deps, seed_ocr, session_maker, mock_llm_client):
        await seed_ocr(42)

        result = await AnalysisStep(deps).run(42, run_key="run-1")

        assert result["ok"] is True
        assert result["complexity"] == "Easy"
        mock_llm_client.generate_content.assert_awaited_once()

        async with session_maker() as session:
            job = await GlmJobRepository(session).get_for_quote(42)
            pages = await GlmPageRepository(session).list_for_quote(42)
            quote = await QuoteRepository(session).get_or_raise(42)
            events = await EventRepository(session).list_for_quote(42, name=EventName.ANALYSIS_COMPLETE)
        assert job.status == JobStatus.SUCCEEDED.value
        assert job.billable_words == 900
        assert job.doc_type == "Birth Certificate"
        assert [p.page_index for p in pages] == [0, 1]
        assert pages[0].words == 500
        assert quote.status == QuoteStatus.ANALYSIS_OK.value
        assert [e.event_id for e in events] == ["analysis-complete-42-run-1"]

    @pytest.mark.asyncio
    async def test_failure_routes_quote_to_hitl_once(self, deps, seed_ocr, session_maker, mock_llm_client):
        await seed_ocr(42)
        mock_llm_client.generate_content.side_effect = APIClientError("model unavailable")

        result = await AnalysisStep(deps).run(42, run_key="run-1")

        assert result["ok"] is False
        assert result["status"] == "hitl"
        mock_llm_client.generate_content.assert_awaited_once()

        async with session_maker() as session:
            job = await GlmJobRepository(session).get_for_quote(42)
            quote = await QuoteRepository(session).get_or_raise(42)
            events = await EventRepository(session).list_for_quote(
                42, name=EventName.MANUAL_REVIEW_REQUIRED
            )
        assert job.status == JobStatus.FAILED.value
        assert "model unavailable" in job.last_error
        assert quote.status == QuoteStatus.HITL.value
        assert len(events) == 1
        assert events[0].payload == {"quote_id": 42, "reason": "analysis_failed"}

    @pytest.mark.asyncio
    async def test_repeated_failure_routing_emits_single_event(self, deps, seed_ocr, session_maker):
        await seed_ocr(42)
        step = AnalysisStep(deps)

        assert await step.route_failure(42, "boom", run_key="run-1") is True
        assert await step.route_failure(42, "boom", run_key="run-1") is False

        async with session_maker() as session:
            events = await EventRepository(session).list_for_quote(
                42, name=EventName.MANUAL_REVIEW_REQUIRED
            )
        assert len(events) == 1

    @pytest.mark.asyncio
    async def test_invalid_model_output_routes_to_hitl(self, deps, seed_ocr, session_maker, mock_llm_client):
        await seed_ocr(42)
        mock_llm_client.generate_content.return_value = '{"complexity": "Impossible"}'

        result = await AnalysisStep(deps).run(42, run_key="run-2")

        assert result["ok"] is False
        async with session_maker() as session:
            assert await GlmJobRepository(session).get_status(42) == JobStatus.FAILED.value
