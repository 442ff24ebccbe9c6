"""Database models for the quote state store."""

from quote_pipeline.database.models import (
    AppSetting,
    GlmJob,
    GlmPage,
    JobStatus,
    OcrJob,
    Quote,
    QuoteEvent,
    QuoteFile,
    QuoteFileStatus,
    QuotePage,
    QuoteStatus,
)

__all__ = [
    "AppSetting",
    "GlmJob",
    "GlmPage",
    "JobStatus",
    "OcrJob",
    "Quote",
    "QuoteEvent",
    "QuoteFile",
    "QuoteFileStatus",
    "QuotePage",
    "QuoteStatus",
]
