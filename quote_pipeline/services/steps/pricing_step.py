"""Pricing step: guarded, repeatable computation of a submitted quote's total."""

from typing import Any, Dict, List

from quote_pipeline.database.models import JobStatus, QuoteStatus
from quote_pipeline.pricing.calculator import QuoteFacts, price_quote
from quote_pipeline.repositories import (
    GlmJobRepository,
    GlmPageRepository,
    QuoteFileRepository,
    QuoteRepository,
)
from quote_pipeline.schemas.events import EventName, QuoteReady, QuoteSubmitted, make_event
from quote_pipeline.services.steps.dependencies import StepDependencies
from quote_pipeline.utils.logging import get_logger

LOGGER = get_logger(__name__)

SKIPPED_HITL = {"skipped": "hitl"}
SKIPPED_NOT_READY = {"skipped": "analysis-not-ready"}


def _detected_languages(glm_pages) -> List[str]:
    names: List[str] = []
    for page in glm_pages:
        for entry in page.languages or []:
            name = entry.get("language") if isinstance(entry, dict) else entry
            if name and name not in names:
                names.append(name)
    return names


class PricingStep:
    """Prices a quote once analysis has succeeded.

    Invoking it early (analysis still running) or while the quote awaits
    human review returns a ``skipped`` result and writes nothing.
    """

    def __init__(self, deps: StepDependencies):
        self.deps = deps

    async def compute(self, payload: QuoteSubmitted) -> Dict[str, Any]:
        quote_id = payload.quote_id

        async with self.deps.session_maker() as session:
            quotes = QuoteRepository(session)
            if await quotes.get_status(quote_id) == QuoteStatus.HITL.value:
                LOGGER.info(f"Quote {quote_id} is in HITL, pricing skipped")
                return dict(SKIPPED_HITL)

            glm_job = await GlmJobRepository(session).get_for_quote(quote_id)
            if glm_job is None or glm_job.status != JobStatus.SUCCEEDED.value:
                LOGGER.info(
                    f"Analysis not ready for quote {quote_id}, pricing skipped",
                    extra={"quote_id": quote_id, "glm_status": glm_job.status if glm_job else None},
                )
                return dict(SKIPPED_NOT_READY)

        policy = await self.deps.policy_provider.get_policy()

        async with self.deps.session_maker() as session:
            quotes = QuoteRepository(session)
            await quotes.save_submission(quote_id, payload.model_dump())

            glm_job = await GlmJobRepository(session).get_for_quote(quote_id)
            glm_pages = await GlmPageRepository(session).list_for_quote(quote_id)
            ocr_words = await QuoteFileRepository(session).total_words(quote_id)

            words = glm_job.billable_words if glm_job.billable_words is not None else ocr_words
            facts = QuoteFacts(
                words=words,
                intended_use=payload.intended_use,
                requested_languages=list(payload.languages),
                detected_languages=_detected_languages(glm_pages),
                complexities=[p.complexity for p in glm_pages] or [glm_job.complexity],
                doc_type=glm_pages[0].doc_type if glm_pages else glm_job.doc_type,
                country_of_issue=glm_job.country_of_issue,
                rush_tier=payload.options.rush,
                certification=payload.options.certification,
                shipping=payload.options.shipping,
                region=payload.billing.region,
            )
            breakdown = price_quote(policy, facts)

            await quotes.save_pricing(quote_id, **breakdown.billing_fields())
            await session.commit()

        LOGGER.info(
            f"Quote {quote_id} priced at {breakdown.total} {breakdown.currency}",
            extra={
                "quote_id": quote_id,
                "pages": breakdown.pages,
                "subtotal": breakdown.subtotal,
                "total": breakdown.total,
            },
        )
        return {"quote_id": quote_id, "status": QuoteStatus.READY.value, **breakdown.to_dict()}

    async def emit_ready(self, quote_id: int, total: float, run_key: str) -> bool:
        event = make_event(
            EventName.QUOTE_READY,
            f"quote-ready-{quote_id}-{run_key}",
            QuoteReady(quote_id=quote_id, total=total),
        )
        return await self.deps.event_bus.publish(event)

    async def run(self, payload: QuoteSubmitted, run_key: str) -> Dict[str, Any]:
        """Run the whole step in-process (no workflow engine)."""
        result = await self.compute(payload)
        if "skipped" not in result:
            await self.emit_ready(payload.quote_id, result["total"], run_key)
        return result
