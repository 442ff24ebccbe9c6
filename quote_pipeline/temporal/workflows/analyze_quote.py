"""Per-quote analysis workflow with OCR fan-in."""

import asyncio
from datetime import timedelta
from typing import Dict, Optional, Set

from temporalio import workflow
from temporalio.common import RetryPolicy
from temporalio.exceptions import ActivityError

from quote_pipeline.temporal.core.constants import (
    ANALYSIS_ACTIVITY_TIMEOUT_SECONDS,
    BOOKKEEPING_MAX_ATTEMPTS,
    DEFAULT_ACTIVITY_TIMEOUT_SECONDS,
    FANIN_MAX_WAIT_SECONDS,
    FANIN_RECHECK_SECONDS,
    OCR_COMPLETE_SIGNAL,
)
from quote_pipeline.temporal.core.errors import failure_reason

BOOKKEEPING_RETRY = RetryPolicy(maximum_attempts=BOOKKEEPING_MAX_ATTEMPTS)


@workflow.defn
class AnalyzeQuoteWorkflow:
    """Waits until every file of the quote is OCR'd, then analyzes it once.

    Started (or signalled) by each ``files/ocr-complete`` event. The store is
    re-checked after every signal and periodically, so a signal that arrives
    before the workflow starts waiting is never lost.
    """

    def __init__(self):
        self._status = "waiting_for_ocr"
        self._completed_files: Set[str] = set()
        self._signals = 0
        self._pending: Optional[list] = None

    @workflow.signal(name=OCR_COMPLETE_SIGNAL)
    async def file_ocr_complete(self, payload: Dict) -> None:
        file_id = payload.get("file_id")
        if file_id:
            self._completed_files.add(file_id)
        self._signals += 1

    @workflow.query
    def get_status(self) -> dict:
        return {
            "status": self._status,
            "completed_files": sorted(self._completed_files),
            "pending_files": self._pending,
        }

    @workflow.run
    async def run(self, payload: Dict) -> Dict:
        quote_id = payload["quote_id"]
        started = workflow.now()

        while True:
            state = await workflow.execute_activity(
                "analysis_fanin_state",
                quote_id,
                start_to_close_timeout=timedelta(seconds=DEFAULT_ACTIVITY_TIMEOUT_SECONDS),
                retry_policy=BOOKKEEPING_RETRY,
            )
            self._pending = state["pending"]
            if state["ready"]:
                break

            waited = (workflow.now() - started).total_seconds()
            if waited >= FANIN_MAX_WAIT_SECONDS:
                self._status = "ocr_incomplete"
                workflow.logger.warning(f"Quote {quote_id} OCR never completed, analysis skipped")
                return {"ok": False, "skipped": "ocr-incomplete", "pending": state["pending"]}

            seen = self._signals
            try:
                await workflow.wait_condition(
                    lambda: self._signals > seen,
                    timeout=timedelta(seconds=FANIN_RECHECK_SECONDS),
                )
            except asyncio.TimeoutError:
                pass

        self._status = "analyzing"
        run_key = workflow.info().run_id
        try:
            summary = await workflow.execute_activity(
                "analyze_quote_pages",
                quote_id,
                start_to_close_timeout=timedelta(seconds=ANALYSIS_ACTIVITY_TIMEOUT_SECONDS),
                retry_policy=RetryPolicy(maximum_attempts=1),
            )
        except ActivityError as e:
            reason = failure_reason(e)
            self._status = "hitl"
            await workflow.execute_activity(
                "route_analysis_failure",
                args=[quote_id, reason, run_key],
                start_to_close_timeout=timedelta(seconds=DEFAULT_ACTIVITY_TIMEOUT_SECONDS),
                retry_policy=BOOKKEEPING_RETRY,
            )
            return {"ok": False, "status": "hitl", "error": reason}

        await workflow.execute_activity(
            "emit_analysis_complete",
            args=[summary, run_key],
            start_to_close_timeout=timedelta(seconds=DEFAULT_ACTIVITY_TIMEOUT_SECONDS),
            retry_policy=BOOKKEEPING_RETRY,
        )
        self._status = "completed"
        return {"ok": True, **summary}
