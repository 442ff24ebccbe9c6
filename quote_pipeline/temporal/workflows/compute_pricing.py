from datetime import timedelta
from typing import Dict

from temporalio import workflow
from temporalio.common import RetryPolicy

from quote_pipeline.temporal.core.constants import (
    BOOKKEEPING_MAX_ATTEMPTS,
    DEFAULT_ACTIVITY_TIMEOUT_SECONDS,
)

BOOKKEEPING_RETRY = RetryPolicy(maximum_attempts=BOOKKEEPING_MAX_ATTEMPTS)


@workflow.defn
class ComputePricingWorkflow:
    """Prices a submitted quote; early or HITL invocations return ``skipped``."""

    @workflow.run
    async def run(self, payload: Dict) -> Dict:
        result = await workflow.execute_activity(
            "compute_quote_pricing",
            payload,
            start_to_close_timeout=timedelta(seconds=DEFAULT_ACTIVITY_TIMEOUT_SECONDS),
            retry_policy=BOOKKEEPING_RETRY,
        )
        if result.get("skipped"):
            workflow.logger.info(f"Pricing skipped: {result['skipped']}")
            return result

        await workflow.execute_activity(
            "emit_quote_ready",
            args=[payload["quote_id"], result["total"], workflow.info().run_id],
            start_to_close_timeout=timedelta(seconds=DEFAULT_ACTIVITY_TIMEOUT_SECONDS),
            retry_policy=BOOKKEEPING_RETRY,
        )
        return result


@workflow.defn
class ComputePricingShimWorkflow:
    """Forwards an internal pricing request to the pricing workflow."""

    @workflow.run
    async def run(self, payload: Dict) -> Dict:
        return await workflow.execute_child_workflow(
            ComputePricingWorkflow.run,
            payload,
            id=f"{workflow.info().workflow_id}-child",
        )
