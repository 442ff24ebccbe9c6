from datetime import timedelta
from typing import Dict

from temporalio import workflow
from temporalio.common import RetryPolicy

from quote_pipeline.temporal.core.constants import (
    BOOKKEEPING_MAX_ATTEMPTS,
    DEFAULT_ACTIVITY_TIMEOUT_SECONDS,
    NON_RETRYABLE_ERROR_TYPES,
)


@workflow.defn
class PrepareJobsWorkflow:
    """Creates file rows and queued job records when a quote is created."""

    @workflow.run
    async def run(self, payload: Dict) -> Dict:
        return await workflow.execute_activity(
            "prepare_quote_jobs",
            payload,
            start_to_close_timeout=timedelta(seconds=DEFAULT_ACTIVITY_TIMEOUT_SECONDS),
            retry_policy=RetryPolicy(
                maximum_attempts=BOOKKEEPING_MAX_ATTEMPTS,
                non_retryable_error_types=NON_RETRYABLE_ERROR_TYPES,
            ),
        )
