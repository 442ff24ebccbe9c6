"""Shared FastAPI dependencies."""

from functools import lru_cache

from quote_pipeline.core.config import settings
from quote_pipeline.core.database import async_session_maker
from quote_pipeline.services.steps import QuoteService
from quote_pipeline.temporal.client import get_temporal_client
from quote_pipeline.temporal.core.event_bus import EventBus
from quote_pipeline.temporal.steps import build_registry


@lru_cache(maxsize=1)
def get_event_bus() -> EventBus:
    return EventBus(
        async_session_maker,
        build_registry(),
        get_temporal_client,
        settings.temporal.task_queue,
    )


def get_quote_service() -> QuoteService:
    return QuoteService(async_session_maker, get_event_bus())
