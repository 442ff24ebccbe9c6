"""Quote-level operations triggered from outside the pipeline."""

import uuid
from typing import Any, Dict, Optional

from quote_pipeline.database.models import JobStatus, Quote, QuoteFileStatus, QuoteStatus
from quote_pipeline.repositories import (
    GlmJobRepository,
    GlmPageRepository,
    QuoteFileRepository,
    QuoteRepository,
)
from quote_pipeline.schemas.events import (
    BillingInfo,
    EventName,
    ManualReviewRequired,
    QuoteOptions,
    QuoteSubmitted,
    make_event,
)
from quote_pipeline.services.steps.dependencies import EventPublisher
from quote_pipeline.utils.logging import get_logger

LOGGER = get_logger(__name__)

USER_REQUESTED_REASON = "user_requested"

# Operator corrections accepted on HITL resolution
CORRECTABLE_FIELDS = ("complexity", "doc_type", "country_of_issue", "billable_words", "names")
# Corrections that also replace the per-page classification
PAGE_FIELDS = ("complexity", "doc_type")


class Stage:
    OCR = "ocr"
    ANALYSIS = "analysis"
    HITL = "hitl"
    READY = "ready"
    PRICING = "pricing"


def submission_from_quote(quote: Quote) -> QuoteSubmitted:
    """Rebuild the submission event payload from a quote's stored options."""
    return QuoteSubmitted(
        quote_id=quote.id,
        intended_use=quote.intended_use or "general",
        languages=list(quote.languages or []),
        billing=BillingInfo(
            country=quote.billing_country,
            region=quote.billing_region,
            currency=quote.currency,
        ),
        options=QuoteOptions(
            rush=quote.rush_tier,
            certification=quote.certification_type,
            shipping=quote.shipping_method,
        ),
    )


class QuoteService:
    """Submission, human review and status queries for quotes."""

    def __init__(self, session_maker, event_bus: EventPublisher):
        self.session_maker = session_maker
        self.event_bus = event_bus

    async def submit(self, submission: QuoteSubmitted, event_id: Optional[str] = None) -> str:
        """Store the customer's options and publish ``quote/submitted``.

        Returns:
            The published event id
        """
        async with self.session_maker() as session:
            await QuoteRepository(session).save_submission(
                submission.quote_id, submission.model_dump()
            )
            await session.commit()

        event_id = event_id or f"quote-submitted-{submission.quote_id}-{uuid.uuid4().hex}"
        await self.event_bus.publish(make_event(EventName.QUOTE_SUBMITTED, event_id, submission))
        return event_id

    async def request_hitl(self, quote_id: int, reason: str = USER_REQUESTED_REASON) -> Dict[str, Any]:
        async with self.session_maker() as session:
            await QuoteRepository(session).set_status(quote_id, QuoteStatus.HITL)
            await session.commit()

        await self.event_bus.publish(
            make_event(
                EventName.MANUAL_REVIEW_REQUIRED,
                f"manual-review-{quote_id}-{uuid.uuid4().hex}",
                ManualReviewRequired(quote_id=quote_id, reason=reason),
            )
        )
        LOGGER.info(f"HITL requested for quote {quote_id}", extra={"quote_id": quote_id, "reason": reason})
        return {"ok": True, "quote_id": quote_id, "status": QuoteStatus.HITL.value}

    async def resolve_hitl(
        self, quote_id: int, corrections: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Apply operator corrections and send the quote back to pricing.

        Args:
            quote_id: Quote under review
            corrections: Optional analysis fields to overwrite

        Returns:
            Result with the re-published submission event id
        """
        fields = {
            key: value
            for key, value in (corrections or {}).items()
            if key in CORRECTABLE_FIELDS and value is not None
        }

        async with self.session_maker() as session:
            quotes = QuoteRepository(session)
            await quotes.get_or_raise(quote_id)
            await GlmJobRepository(session).upsert(
                quote_id, JobStatus.SUCCEEDED, last_error=None, **fields
            )
            page_fields = {key: fields[key] for key in PAGE_FIELDS if key in fields}
            if page_fields:
                await GlmPageRepository(session).apply_corrections(quote_id, **page_fields)
            quote = await quotes.set_status(quote_id, QuoteStatus.ANALYSIS_OK)
            submission = submission_from_quote(quote)
            await session.commit()

        event_id = f"quote-submitted-{quote_id}-hitl-{uuid.uuid4().hex}"
        await self.event_bus.publish(make_event(EventName.QUOTE_SUBMITTED, event_id, submission))
        LOGGER.info(
            f"HITL resolved for quote {quote_id}",
            extra={"quote_id": quote_id, "corrected": sorted(fields)},
        )
        return {
            "ok": True,
            "quote_id": quote_id,
            "status": QuoteStatus.ANALYSIS_OK.value,
            "event_id": event_id,
        }

    async def get_stage(self, quote_id: int) -> str:
        """User-facing pipeline stage of a quote.

        Raises:
            QuoteNotFoundError: If the quote does not exist
        """
        async with self.session_maker() as session:
            quote = await QuoteRepository(session).get_or_raise(quote_id)
            files = await QuoteFileRepository(session).list_files(quote_id)
            glm_status = await GlmJobRepository(session).get_status(quote_id)

        if not files or any(f.status != QuoteFileStatus.OCR_COMPLETE.value for f in files):
            return Stage.OCR
        if glm_status in (None, JobStatus.QUEUED.value, JobStatus.STARTED.value):
            return Stage.ANALYSIS
        if quote.status == QuoteStatus.HITL.value:
            return Stage.HITL
        if quote.status == QuoteStatus.READY.value:
            return Stage.READY
        return Stage.PRICING

    async def get_status(self, quote_id: int) -> Dict[str, Any]:
        stage = await self.get_stage(quote_id)
        async with self.session_maker() as session:
            quote = await QuoteRepository(session).get_or_raise(quote_id)
        return {
            "quote_id": quote_id,
            "status": quote.status,
            "stage": stage,
            "total": quote.total,
            "currency": quote.currency,
        }
