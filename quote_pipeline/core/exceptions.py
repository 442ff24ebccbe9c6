"""Custom exception hierarchy."""


class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.original_error = original_error


class APIClientError(AppError):
    """Raised when an external API call fails."""
    pass


class APITimeoutError(APIClientError):
    """Raised when an external API call times out."""
    pass


class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""
    pass


class PipelineError(AppError):
    """Base exception for pipeline step errors."""
    pass


class OCRExtractionError(PipelineError):
    """OCR step failed."""
    pass


class FileTooLargeError(OCRExtractionError):
    """File exceeds the synchronous OCR size limit."""
    pass


class OCRConfigurationError(OCRExtractionError):
    """OCR vendor configuration is missing or invalid."""
    pass


class AnalysisError(PipelineError):
    """Analysis step failed or returned unusable output."""
    pass


class QuoteNotFoundError(AppError):
    """Raised when a quote is not found."""
    pass
