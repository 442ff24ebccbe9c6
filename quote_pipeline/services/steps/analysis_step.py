"""Analysis step: classify a quote's OCR pages, or route the quote to review."""

from typing import Any, Dict

from quote_pipeline.database.models import JobStatus, QuoteStatus
from quote_pipeline.repositories import (
    GlmJobRepository,
    GlmPageRepository,
    QuoteFileRepository,
    QuoteRepository,
)
from quote_pipeline.schemas.events import (
    AnalysisComplete,
    EventName,
    ManualReviewRequired,
    make_event,
)
from quote_pipeline.services.steps.dependencies import StepDependencies
from quote_pipeline.utils.logging import get_logger

LOGGER = get_logger(__name__)

ANALYSIS_FAILED_REASON = "analysis_failed"


class AnalysisStep:
    """Runs the analysis model once per quote.

    A failed analysis is never retried: the job is marked failed, the quote
    goes to ``hitl`` and one manual-review event is emitted per run.
    """

    def __init__(self, deps: StepDependencies):
        self.deps = deps

    async def fanin_state(self, quote_id: int) -> Dict[str, Any]:
        """OCR progress of the quote's files.

        ``ready`` is True once the quote has files and all are OCR complete.
        """
        async with self.deps.session_maker() as session:
            files = QuoteFileRepository(session)
            total = len(await files.list_files(quote_id))
            pending = await files.pending_ocr_files(quote_id)
        return {"total": total, "pending": pending, "ready": total > 0 and not pending}

    async def analyze(self, quote_id: int) -> Dict[str, Any]:
        """Mark the job started, call the model and persist its classification.

        Raises:
            AnalysisError: If the model fails or its output is unusable
        """
        async with self.deps.session_maker() as session:
            await GlmJobRepository(session).upsert(quote_id, JobStatus.STARTED, last_error=None)
            service = self.deps.analysis_service
            pages = service.build_pages(await QuoteFileRepository(session).list_pages(quote_id))
            await session.commit()

        result = await service.analyze(pages)

        async with self.deps.session_maker() as session:
            await GlmPageRepository(session).upsert_pages(quote_id, result.page_rows())
            await GlmJobRepository(session).upsert(
                quote_id,
                JobStatus.SUCCEEDED,
                doc_type=result.doc_type,
                country_of_issue=result.country_of_issue,
                complexity=result.complexity,
                names=result.names,
                billable_words=result.billing.billable_words,
                billing=result.billing.model_dump(),
            )
            await QuoteRepository(session).advance_to_analysis_ok(quote_id)
            await session.commit()

        LOGGER.info(
            f"Analysis succeeded for quote {quote_id}",
            extra={"quote_id": quote_id, "complexity": result.complexity, "doc_type": result.doc_type},
        )
        return {
            "quote_id": quote_id,
            "doc_type": result.doc_type,
            "country_of_issue": result.country_of_issue,
            "complexity": result.complexity,
            "names": result.names,
            "billing": result.billing.model_dump(),
        }

    async def route_failure(self, quote_id: int, error: str, run_key: str) -> bool:
        """Record the failure, move the quote to HITL and notify operators.

        Returns:
            True if the manual-review event was emitted by this call
        """
        async with self.deps.session_maker() as session:
            await GlmJobRepository(session).upsert(quote_id, JobStatus.FAILED, last_error=error)
            await QuoteRepository(session).set_status(quote_id, QuoteStatus.HITL)
            await session.commit()

        LOGGER.warning(
            f"Analysis failed for quote {quote_id}, routed to HITL: {error}",
            extra={"quote_id": quote_id},
        )
        event = make_event(
            EventName.MANUAL_REVIEW_REQUIRED,
            f"manual-review-{quote_id}-analysis-{run_key}",
            ManualReviewRequired(quote_id=quote_id, reason=ANALYSIS_FAILED_REASON),
        )
        return await self.deps.event_bus.publish(event)

    async def emit_complete(self, summary: Dict[str, Any], run_key: str) -> bool:
        quote_id = summary["quote_id"]
        event = make_event(
            EventName.ANALYSIS_COMPLETE,
            f"analysis-complete-{quote_id}-{run_key}",
            AnalysisComplete.model_validate(summary),
        )
        return await self.deps.event_bus.publish(event)

    async def run(self, quote_id: int, run_key: str) -> Dict[str, Any]:
        """Run the whole step in-process (no workflow engine)."""
        try:
            summary = await self.analyze(quote_id)
        except Exception as e:
            LOGGER.error(f"Analysis raised for quote {quote_id}: {e}", exc_info=True)
            await self.route_failure(quote_id, str(e), run_key)
            return {"ok": False, "status": QuoteStatus.HITL.value, "error": str(e)}
        await self.emit_complete(summary, run_key)
        return {"ok": True, **summary}
