"""Workflow running OCR for one uploaded file."""

from datetime import timedelta
from typing import Dict, Optional

from temporalio import workflow
from temporalio.common import RetryPolicy
from temporalio.exceptions import ActivityError, ApplicationError

from quote_pipeline.temporal.core.constants import (
    BOOKKEEPING_MAX_ATTEMPTS,
    DEFAULT_ACTIVITY_TIMEOUT_SECONDS,
    NON_RETRYABLE_ERROR_TYPES,
    OCR_ACTIVITY_TIMEOUT_SECONDS,
    OCR_MAX_ATTEMPTS,
)
from quote_pipeline.temporal.core.errors import failure_reason

BOOKKEEPING_RETRY = RetryPolicy(
    maximum_attempts=BOOKKEEPING_MAX_ATTEMPTS,
    non_retryable_error_types=NON_RETRYABLE_ERROR_TYPES,
)


@workflow.defn
class OcrDocumentWorkflow:
    """OCR one file: checks, extraction (retried), then the completion event."""

    def __init__(self):
        self._status = "initialized"
        self._reason: Optional[str] = None

    @workflow.query
    def get_status(self) -> dict:
        return {"status": self._status, "reason": self._reason}

    @workflow.run
    async def run(self, payload: Dict) -> Dict:
        file_id = payload.get("file_id")
        workflow.logger.info(f"ocr-document received for file {file_id}")

        try:
            self._status = "checking"
            checked = await workflow.execute_activity(
                "ocr_check_file",
                payload,
                start_to_close_timeout=timedelta(seconds=DEFAULT_ACTIVITY_TIMEOUT_SECONDS),
                retry_policy=BOOKKEEPING_RETRY,
            )

            if checked.get("skip"):
                self._status = "skipped"
                summary = checked["summary"]
            else:
                self._status = "extracting"
                summary = await workflow.execute_activity(
                    "ocr_extract_file",
                    payload,
                    start_to_close_timeout=timedelta(seconds=OCR_ACTIVITY_TIMEOUT_SECONDS),
                    retry_policy=RetryPolicy(
                        maximum_attempts=OCR_MAX_ATTEMPTS,
                        initial_interval=timedelta(seconds=5),
                        backoff_coefficient=2.0,
                        non_retryable_error_types=NON_RETRYABLE_ERROR_TYPES,
                    ),
                )
        except ActivityError as e:
            reason = failure_reason(e)
            self._status = "failed"
            self._reason = reason
            await workflow.execute_activity(
                "ocr_mark_failed",
                args=[payload, reason],
                start_to_close_timeout=timedelta(seconds=DEFAULT_ACTIVITY_TIMEOUT_SECONDS),
                retry_policy=BOOKKEEPING_RETRY,
            )
            raise ApplicationError(reason, {"ok": False, "reason": reason}, non_retryable=True)

        await workflow.execute_activity(
            "ocr_emit_complete",
            args=[payload, summary],
            start_to_close_timeout=timedelta(seconds=DEFAULT_ACTIVITY_TIMEOUT_SECONDS),
            retry_policy=BOOKKEEPING_RETRY,
        )
        self._status = "completed"
        workflow.logger.info(f"ocr-document complete for file {file_id}")
        return {"ok": True, "skipped": bool(checked.get("skip")), **summary}
