"""Workflow retry and routing rules, run on Temporal's time-skipping test server.

Activities are replaced by recording stubs registered under the production
activity names.
"""

import asyncio
import uuid
from typing import Dict, List, Optional

import pytest
import pytest_asyncio
from temporalio import activity
from temporalio.client import WorkflowFailureError
from temporalio.exceptions import ApplicationError
from temporalio.testing import WorkflowEnvironment
from temporalio.worker import UnsandboxedWorkflowRunner, Worker

from quote_pipeline.temporal.core.constants import OCR_COMPLETE_SIGNAL, OCR_MAX_ATTEMPTS
from quote_pipeline.temporal.workflows import (
    AnalyzeQuoteWorkflow,
    ComputePricingShimWorkflow,
    ComputePricingWorkflow,
    OcrDocumentWorkflow,
)

UPLOAD = {
    "quote_id": 42,
    "file_id": "file-1",
    "gcs_uri": "gs://quotes/42/file-1.pdf",
    "filename": "birth.pdf",
    "bytes": 2048,
    "mime": "application/pdf",
}

OCR_SUMMARY = {"page_count": 2, "words": 900, "avg_confidence": 0.96, "languages": {"fr": 0.97}}


@pytest_asyncio.fixture
async def workflow_env():
    env = await WorkflowEnvironment.start_time_skipping()
    yield env
    await env.shutdown()


def _worker(env: WorkflowEnvironment, workflows: list, activities: list) -> Worker:
    return Worker(
        env.client,
        task_queue=f"test-{uuid.uuid4()}",
        workflows=workflows,
        activities=activities,
        workflow_runner=UnsandboxedWorkflowRunner(),
    )


class OcrStubs:
    def __init__(self, extract_failures: int = 0, check_error: Optional[Exception] = None):
        self.extract_failures = extract_failures
        self.check_error = check_error
        self.check_calls = 0
        self.extract_attempts: List[int] = []
        self.failed: List[str] = []
        self.emitted: List[Dict] = []

    @activity.defn(name="ocr_check_file")
    async def check(self, payload: Dict) -> Dict:
        self.check_calls += 1
        if self.check_error:
            raise self.check_error
        return {"skip": False}

    @activity.defn(name="ocr_extract_file")
    async def extract(self, payload: Dict) -> Dict:
        self.extract_attempts.append(activity.info().attempt)
        if len(self.extract_attempts) <= self.extract_failures:
            raise RuntimeError("vendor 503")
        return dict(OCR_SUMMARY)

    @activity.defn(name="ocr_mark_failed")
    async def mark_failed(self, payload: Dict, reason: str) -> None:
        self.failed.append(reason)

    @activity.defn(name="ocr_emit_complete")
    async def emit_complete(self, payload: Dict, summary: Dict) -> bool:
        self.emitted.append(summary)
        return True

    @property
    def activities(self) -> list:
        return [self.check, self.extract, self.mark_failed, self.emit_complete]


class AnalysisStubs:
    def __init__(self, fail: bool = False, wait_for_signal: bool = False, never_ready: bool = False):
        self.fail = fail
        self.wait_for_signal = wait_for_signal
        self.never_ready = never_ready
        self.signal_sent = False
        self.fanin_calls = 0
        self.analyze_calls = 0
        self.analyzed_after_signal: Optional[bool] = None
        self.routed: List[tuple] = []
        self.completed: List[Dict] = []

    @activity.defn(name="analysis_fanin_state")
    async def fanin_state(self, quote_id: int) -> Dict:
        self.fanin_calls += 1
        ready = not self.never_ready and (not self.wait_for_signal or self.signal_sent)
        return {"total": 2, "pending": [] if ready else ["file-2"], "ready": ready}

    @activity.defn(name="analyze_quote_pages")
    async def analyze(self, quote_id: int) -> Dict:
        self.analyze_calls += 1
        self.analyzed_after_signal = self.signal_sent
        if self.fail:
            raise ApplicationError("model returned invalid JSON")
        return {"quote_id": quote_id, "doc_type": "Passport", "complexity": "Easy"}

    @activity.defn(name="route_analysis_failure")
    async def route_failure(self, quote_id: int, error: str, run_key: str) -> bool:
        self.routed.append((quote_id, error, run_key))
        return True

    @activity.defn(name="emit_analysis_complete")
    async def emit_complete(self, summary: Dict, run_key: str) -> bool:
        self.completed.append(summary)
        return True

    @property
    def activities(self) -> list:
        return [self.fanin_state, self.analyze, self.route_failure, self.emit_complete]


class PricingStubs:
    def __init__(self, result: Dict):
        self.result = result
        self.ready: List[tuple] = []

    @activity.defn(name="compute_quote_pricing")
    async def compute(self, payload: Dict) -> Dict:
        return dict(self.result)

    @activity.defn(name="emit_quote_ready")
    async def emit_ready(self, quote_id: int, total: float, run_key: str) -> bool:
        self.ready.append((quote_id, total))
        return True

    @property
    def activities(self) -> list:
        return [self.compute, self.emit_ready]


class TestOcrDocumentWorkflow:
    @pytest.mark.asyncio
    async def test_transient_failures_are_retried_until_success(self, workflow_env):
        stubs = OcrStubs(extract_failures=2)
        async with _worker(workflow_env, [OcrDocumentWorkflow], stubs.activities) as worker:
            result = await workflow_env.client.execute_workflow(
                OcrDocumentWorkflow.run, UPLOAD, id=f"ocr-{uuid.uuid4()}", task_queue=worker.task_queue
            )

        assert stubs.extract_attempts == [1, 2, 3]
        assert result["ok"] is True
        assert result["page_count"] == 2
        assert stubs.emitted == [OCR_SUMMARY]
        assert stubs.failed == []

    @pytest.mark.asyncio
    async def test_exhausted_retries_mark_job_failed(self, workflow_env):
        stubs = OcrStubs(extract_failures=OCR_MAX_ATTEMPTS)
        async with _worker(workflow_env, [OcrDocumentWorkflow], stubs.activities) as worker:
            with pytest.raises(WorkflowFailureError) as exc_info:
                await workflow_env.client.execute_workflow(
                    OcrDocumentWorkflow.run, UPLOAD, id=f"ocr-{uuid.uuid4()}", task_queue=worker.task_queue
                )

        assert stubs.extract_attempts == [1, 2, 3]
        assert stubs.failed == ["vendor 503"]
        assert stubs.emitted == []
        assert isinstance(exc_info.value.cause, ApplicationError)
        assert exc_info.value.cause.message == "vendor 503"

    @pytest.mark.asyncio
    async def test_size_violation_is_not_retried(self, workflow_env):
        error = ApplicationError(
            "File exceeds sync processing limit", type="FileTooLargeError", non_retryable=True
        )
        stubs = OcrStubs(check_error=error)
        async with _worker(workflow_env, [OcrDocumentWorkflow], stubs.activities) as worker:
            with pytest.raises(WorkflowFailureError):
                await workflow_env.client.execute_workflow(
                    OcrDocumentWorkflow.run, UPLOAD, id=f"ocr-{uuid.uuid4()}", task_queue=worker.task_queue
                )

        assert stubs.check_calls == 1
        assert stubs.extract_attempts == []
        assert stubs.failed == ["File exceeds sync processing limit"]
        assert stubs.emitted == []


class TestAnalyzeQuoteWorkflow:
    @pytest.mark.asyncio
    async def test_failure_is_attempted_once_and_routed_to_hitl(self, workflow_env):
        stubs = AnalysisStubs(fail=True)
        async with _worker(workflow_env, [AnalyzeQuoteWorkflow], stubs.activities) as worker:
            result = await workflow_env.client.execute_workflow(
                AnalyzeQuoteWorkflow.run,
                {"quote_id": 42},
                id=f"analyze-quote-{uuid.uuid4()}",
                task_queue=worker.task_queue,
            )

        assert stubs.analyze_calls == 1
        assert result == {"ok": False, "status": "hitl", "error": "model returned invalid JSON"}
        assert [(quote_id, error) for quote_id, error, _ in stubs.routed] == [
            (42, "model returned invalid JSON")
        ]
        assert stubs.completed == []

    @pytest.mark.asyncio
    async def test_success_emits_completion(self, workflow_env):
        stubs = AnalysisStubs()
        async with _worker(workflow_env, [AnalyzeQuoteWorkflow], stubs.activities) as worker:
            result = await workflow_env.client.execute_workflow(
                AnalyzeQuoteWorkflow.run,
                {"quote_id": 42},
                id=f"analyze-quote-{uuid.uuid4()}",
                task_queue=worker.task_queue,
            )

        assert result["ok"] is True
        assert result["doc_type"] == "Passport"
        assert stubs.routed == []
        assert len(stubs.completed) == 1

    @pytest.mark.asyncio
    async def test_waits_for_every_file_before_analyzing(self, workflow_env):
        stubs = AnalysisStubs(wait_for_signal=True)
        async with _worker(workflow_env, [AnalyzeQuoteWorkflow], stubs.activities) as worker:
            handle = await workflow_env.client.start_workflow(
                AnalyzeQuoteWorkflow.run,
                {"quote_id": 42},
                id=f"analyze-quote-{uuid.uuid4()}",
                task_queue=worker.task_queue,
            )
            while stubs.fanin_calls == 0:
                await asyncio.sleep(0.05)
            stubs.signal_sent = True
            await handle.signal(OCR_COMPLETE_SIGNAL, {"quote_id": 42, "file_id": "file-2"})
            result = await handle.result()

        assert result["ok"] is True
        assert stubs.fanin_calls >= 2
        assert stubs.analyze_calls == 1
        assert stubs.analyzed_after_signal is True

    @pytest.mark.asyncio
    async def test_gives_up_when_ocr_never_completes(self, workflow_env):
        stubs = AnalysisStubs(never_ready=True)
        async with _worker(workflow_env, [AnalyzeQuoteWorkflow], stubs.activities) as worker:
            result = await workflow_env.client.execute_workflow(
                AnalyzeQuoteWorkflow.run,
                {"quote_id": 42},
                id=f"analyze-quote-{uuid.uuid4()}",
                task_queue=worker.task_queue,
            )

        assert result == {"ok": False, "skipped": "ocr-incomplete", "pending": ["file-2"]}
        assert stubs.analyze_calls == 0
        assert stubs.routed == []


class TestComputePricingWorkflow:
    @pytest.mark.asyncio
    async def test_skipped_pricing_emits_nothing(self, workflow_env):
        stubs = PricingStubs({"skipped": "hitl"})
        async with _worker(workflow_env, [ComputePricingWorkflow], stubs.activities) as worker:
            result = await workflow_env.client.execute_workflow(
                ComputePricingWorkflow.run,
                {"quote_id": 42},
                id=f"compute-pricing-{uuid.uuid4()}",
                task_queue=worker.task_queue,
            )

        assert result == {"skipped": "hitl"}
        assert stubs.ready == []

    @pytest.mark.asyncio
    async def test_priced_quote_emits_ready_through_shim(self, workflow_env):
        stubs = PricingStubs({"quote_id": 42, "status": "ready", "total": 273.0})
        workflows = [ComputePricingWorkflow, ComputePricingShimWorkflow]
        async with _worker(workflow_env, workflows, stubs.activities) as worker:
            result = await workflow_env.client.execute_workflow(
                ComputePricingShimWorkflow.run,
                {"quote_id": 42},
                id=f"compute-pricing-shim-{uuid.uuid4()}",
                task_queue=worker.task_queue,
            )

        assert result["total"] == 273.0
        assert stubs.ready == [(42, 273.0)]
