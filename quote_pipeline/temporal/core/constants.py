"""Shared constants for Temporal workflows."""

# Task Queues
DEFAULT_TASK_QUEUE = "quotes-queue"

# Timeouts
DEFAULT_ACTIVITY_TIMEOUT_SECONDS = 60
OCR_ACTIVITY_TIMEOUT_SECONDS = 600
ANALYSIS_ACTIVITY_TIMEOUT_SECONDS = 600

# Retries
OCR_MAX_ATTEMPTS = 3  # first try + 2 retries
BOOKKEEPING_MAX_ATTEMPTS = 5

# Analysis fan-in
OCR_COMPLETE_SIGNAL = "file_ocr_complete"
FANIN_RECHECK_SECONDS = 300
FANIN_MAX_WAIT_SECONDS = 24 * 3600

# Errors that must never be retried
NON_RETRYABLE_ERROR_TYPES = ["FileTooLargeError", "OCRConfigurationError", "QuoteNotFoundError"]


class StepId:
    PREPARE_JOBS = "quote-created-prepare-jobs"
    OCR_DOCUMENT = "ocr-document"
    ANALYZE_QUOTE = "analyze-quote"
    COMPUTE_PRICING = "compute-pricing"
    COMPUTE_PRICING_SHIM = "compute-pricing-shim"
