"""Every step of the quote pipeline, declared once."""

from typing import Tuple

from quote_pipeline.schemas.events import EventName
from quote_pipeline.temporal.activities import (
    AnalysisActivities,
    OcrActivities,
    PrepareJobsActivities,
    PricingActivities,
)
from quote_pipeline.temporal.core.constants import OCR_COMPLETE_SIGNAL, StepId
from quote_pipeline.temporal.core.registry import StepDescriptor, StepRegistry, TriggerMode
from quote_pipeline.temporal.workflows import (
    AnalyzeQuoteWorkflow,
    ComputePricingShimWorkflow,
    ComputePricingWorkflow,
    OcrDocumentWorkflow,
    PrepareJobsWorkflow,
)

STEP_DESCRIPTORS: Tuple[StepDescriptor, ...] = (
    StepDescriptor(
        step_id=StepId.PREPARE_JOBS,
        event=EventName.QUOTE_CREATED,
        workflow=PrepareJobsWorkflow,
        activity_class=PrepareJobsActivities,
        activities=("prepare_quote_jobs",),
    ),
    StepDescriptor(
        step_id=StepId.OCR_DOCUMENT,
        event=EventName.FILES_UPLOADED,
        workflow=OcrDocumentWorkflow,
        activity_class=OcrActivities,
        activities=(
            "ocr_check_file",
            "ocr_extract_file",
            "ocr_mark_failed",
            "ocr_emit_complete",
        ),
    ),
    StepDescriptor(
        step_id=StepId.ANALYZE_QUOTE,
        event=EventName.OCR_COMPLETE,
        workflow=AnalyzeQuoteWorkflow,
        activity_class=AnalysisActivities,
        activities=(
            "analysis_fanin_state",
            "analyze_quote_pages",
            "route_analysis_failure",
            "emit_analysis_complete",
        ),
        mode=TriggerMode.SIGNAL_WITH_START,
        signal=OCR_COMPLETE_SIGNAL,
    ),
    StepDescriptor(
        step_id=StepId.COMPUTE_PRICING,
        event=EventName.QUOTE_SUBMITTED,
        workflow=ComputePricingWorkflow,
        activity_class=PricingActivities,
        activities=("compute_quote_pricing", "emit_quote_ready"),
    ),
    StepDescriptor(
        step_id=StepId.COMPUTE_PRICING_SHIM,
        event=EventName.COMPUTE_PRICING_SHIM,
        workflow=ComputePricingShimWorkflow,
    ),
)


def build_registry() -> StepRegistry:
    return StepRegistry(STEP_DESCRIPTORS)
