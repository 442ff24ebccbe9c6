"""Step bodies of the quote pipeline, independent of the workflow engine."""

from quote_pipeline.services.steps.analysis_step import AnalysisStep
from quote_pipeline.services.steps.dependencies import EventPublisher, StepDependencies
from quote_pipeline.services.steps.ocr_step import OcrStep
from quote_pipeline.services.steps.prepare_jobs import PrepareJobsStep
from quote_pipeline.services.steps.pricing_step import PricingStep
from quote_pipeline.services.steps.quote_service import QuoteService, Stage

__all__ = [
    "AnalysisStep",
    "EventPublisher",
    "OcrStep",
    "PrepareJobsStep",
    "PricingStep",
    "QuoteService",
    "Stage",
    "StepDependencies",
]
