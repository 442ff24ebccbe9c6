"""Analysis activities. The model call is attempted exactly once."""

from typing import Dict

from temporalio import activity

from quote_pipeline.services.steps import AnalysisStep, StepDependencies
from quote_pipeline.temporal.core.errors import step_failure


class AnalysisActivities:
    def __init__(self, deps: StepDependencies):
        self.step = AnalysisStep(deps)

    @activity.defn
    async def analysis_fanin_state(self, quote_id: int) -> Dict:
        return await self.step.fanin_state(quote_id)

    @activity.defn
    async def analyze_quote_pages(self, quote_id: int) -> Dict:
        try:
            return await self.step.analyze(quote_id)
        except Exception as e:
            activity.logger.error(
                f"Analysis failed for quote {quote_id}: {e}",
                extra={"quote_id": quote_id, "error_type": type(e).__name__},
            )
            raise step_failure(e, non_retryable=True) from e

    @activity.defn
    async def route_analysis_failure(self, quote_id: int, error: str, run_key: str) -> bool:
        return await self.step.route_failure(quote_id, error, run_key)

    @activity.defn
    async def emit_analysis_complete(self, summary: Dict, run_key: str) -> bool:
        return await self.step.emit_complete(summary, run_key)
