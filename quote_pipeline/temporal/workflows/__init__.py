from quote_pipeline.temporal.workflows.analyze_quote import AnalyzeQuoteWorkflow
from quote_pipeline.temporal.workflows.compute_pricing import (
    ComputePricingShimWorkflow,
    ComputePricingWorkflow,
)
from quote_pipeline.temporal.workflows.ocr_document import OcrDocumentWorkflow
from quote_pipeline.temporal.workflows.prepare_jobs import PrepareJobsWorkflow

__all__ = [
    "AnalyzeQuoteWorkflow",
    "ComputePricingShimWorkflow",
    "ComputePricingWorkflow",
    "OcrDocumentWorkflow",
    "PrepareJobsWorkflow",
]
