"""Pricing activities."""

from typing import Dict

from temporalio import activity

from quote_pipeline.schemas.events import QuoteSubmitted
from quote_pipeline.services.steps import PricingStep, StepDependencies


class PricingActivities:
    def __init__(self, deps: StepDependencies):
        self.step = PricingStep(deps)

    @activity.defn
    async def compute_quote_pricing(self, payload: Dict) -> Dict:
        result = await self.step.compute(QuoteSubmitted.model_validate(payload))
        activity.logger.info(
            f"Pricing result for quote {payload.get('quote_id')}: "
            f"{result.get('skipped') or result.get('total')}",
            extra={"quote_id": payload.get("quote_id")},
        )
        return result

    @activity.defn
    async def emit_quote_ready(self, quote_id: int, total: float, run_key: str) -> bool:
        return await self.step.emit_ready(quote_id, total, run_key)
