from quote_pipeline.temporal.activities.analysis import AnalysisActivities
from quote_pipeline.temporal.activities.ocr import OcrActivities
from quote_pipeline.temporal.activities.prepare_jobs import PrepareJobsActivities
from quote_pipeline.temporal.activities.pricing import PricingActivities

__all__ = [
    "AnalysisActivities",
    "OcrActivities",
    "PrepareJobsActivities",
    "PricingActivities",
]
