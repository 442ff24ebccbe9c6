"""Unit tests for the guarded pricing step."""

import pytest

from quote_pipeline.database.models import JobStatus, QuoteFileStatus, QuoteStatus
from quote_pipeline.repositories import (
    EventRepository,
    GlmJobRepository,
    QuoteFileRepository,
    QuoteRepository,
)
from quote_pipeline.schemas.events import BillingInfo, EventName, QuoteOptions, QuoteSubmitted
from quote_pipeline.services.steps import PricingStep


@pytest.fixture
def submission() -> QuoteSubmitted:
    return QuoteSubmitted(
        quote_id=42,
        intended_use="general",
        languages=[],
        billing=BillingInfo(country="CA", region="AB", currency="CAD"),
        options=QuoteOptions(),
    )


@pytest.fixture
def seed_analysis(session_maker, create_quote):
    """Quote with 900 OCR words and an analysis job in the given state."""

    async def _seed(glm_status: JobStatus, quote_status: QuoteStatus = QuoteStatus.ANALYSIS_OK):
        await create_quote(42, status=quote_status.value)
        async with session_maker() as session:
            files = QuoteFileRepository(session)
            await files.upsert_file(42, "file-1", status=QuoteFileStatus.OCR_COMPLETE.value)
            await files.upsert_pages(42, "file-1", [{"page_number": 1, "word_count": 900}])
            await GlmJobRepository(session).upsert(42, glm_status, complexity="Easy")
            await session.commit()

    return _seed


async def _quote(session_maker):
    async with session_maker() as session:
        return await QuoteRepository(session).get_or_raise(42)


class TestPricingGuards:
    @pytest.mark.asyncio
    async def test_analysis_not_ready_is_a_no_op(self, deps, seed_analysis, session_maker, submission):
        await seed_analysis(JobStatus.STARTED)
        before = await _quote(session_maker)

        result = await PricingStep(deps).run(submission, run_key="run-1")

        assert result == {"skipped": "analysis-not-ready"}
        after = await _quote(session_maker)
        assert after.status == before.status == QuoteStatus.ANALYSIS_OK.value
        assert after.total is None
        assert after.billing_region is None
        assert after.updated_at == before.updated_at
        async with session_maker() as session:
            assert await EventRepository(session).list_for_quote(42, name=EventName.QUOTE_READY) == []

    @pytest.mark.asyncio
    async def test_hitl_quote_is_skipped(self, deps, seed_analysis, session_maker, submission):
        await seed_analysis(JobStatus.SUCCEEDED, quote_status=QuoteStatus.HITL)

        result = await PricingStep(deps).compute(submission)

        assert result == {"skipped": "hitl"}
        assert (await _quote(session_maker)).total is None

    @pytest.mark.asyncio
    async def test_guards_are_repeatable(self, deps, seed_analysis, submission):
        await seed_analysis(JobStatus.QUEUED)
        step = PricingStep(deps)
        assert await step.compute(submission) == await step.compute(submission)


class TestPricingStep:
    @pytest.mark.asyncio
    async def test_prices_ready_quote(self, deps, seed_analysis, session_maker, submission):
        await seed_analysis(JobStatus.SUCCEEDED)

        result = await PricingStep(deps).run(submission, run_key="run-1")

        assert result["status"] == "ready"
        assert result["pages"] == 4.0
        assert result["subtotal"] == 260
        assert result["tax"] == 13.00
        assert result["total"] == 273.00

        quote = await _quote(session_maker)
        assert quote.status == QuoteStatus.READY.value
        assert quote.billable_pages == 4.0
        assert quote.total == 273.00
        assert quote.billing_region == "AB"

        async with session_maker() as session:
            events = await EventRepository(session).list_for_quote(42, name=EventName.QUOTE_READY)
        assert [e.event_id for e in events] == ["quote-ready-42-run-1"]
        assert events[0].payload["total"] == 273.00

    @pytest.mark.asyncio
    async def test_billable_words_from_analysis_take_precedence(
        self, deps, seed_analysis, session_maker, submission
    ):
        await seed_analysis(JobStatus.SUCCEEDED)
        async with session_maker() as session:
            await GlmJobRepository(session).upsert(42, JobStatus.SUCCEEDED, billable_words=450)
            await session.commit()

        result = await PricingStep(deps).compute(submission)

        assert result["words"] == 450
        assert result["pages"] == 2.0
        assert result["total"] == 136.50

    @pytest.mark.asyncio
    async def test_repricing_same_facts_is_stable(self, deps, seed_analysis, submission):
        await seed_analysis(JobStatus.SUCCEEDED)
        step = PricingStep(deps)

        first = await step.compute(submission)
        second = await step.compute(submission)

        assert first["total"] == second["total"]
