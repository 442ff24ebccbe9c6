"""Job preparation activities."""

from typing import Dict

from temporalio import activity

from quote_pipeline.core.exceptions import QuoteNotFoundError
from quote_pipeline.schemas.events import QuoteCreated
from quote_pipeline.services.steps import PrepareJobsStep, StepDependencies
from quote_pipeline.temporal.core.errors import step_failure


class PrepareJobsActivities:
    def __init__(self, deps: StepDependencies):
        self.step = PrepareJobsStep(deps)

    @activity.defn
    async def prepare_quote_jobs(self, payload: Dict) -> Dict:
        try:
            return await self.step.prepare(QuoteCreated.model_validate(payload))
        except QuoteNotFoundError as e:
            raise step_failure(e, non_retryable=True) from e
