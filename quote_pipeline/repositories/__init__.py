"""Repository layer modules."""

from quote_pipeline.repositories.event_repository import EventRepository
from quote_pipeline.repositories.glm_page_repository import GlmPageRepository
from quote_pipeline.repositories.job_repository import GlmJobRepository, OcrJobRepository
from quote_pipeline.repositories.quote_file_repository import QuoteFileRepository
from quote_pipeline.repositories.quote_repository import QuoteRepository
from quote_pipeline.repositories.settings_repository import SettingsRepository

__all__ = [
    "EventRepository",
    "GlmJobRepository",
    "GlmPageRepository",
    "OcrJobRepository",
    "QuoteFileRepository",
    "QuoteRepository",
    "SettingsRepository",
]
