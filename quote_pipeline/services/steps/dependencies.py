"""Dependency context shared by every step of a worker process."""

from dataclasses import dataclass
from typing import Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from quote_pipeline.core.config import Settings
from quote_pipeline.pricing.policy import PolicyProvider
from quote_pipeline.schemas.events import Event
from quote_pipeline.services.analysis import AnalysisService, GeminiClient
from quote_pipeline.services.ocr import OCRClientCache, OCRService


class EventPublisher(Protocol):
    async def publish(self, event: Event) -> bool: ...


@dataclass
class StepDependencies:
    """Long-lived collaborators handed to step services and activities."""

    session_maker: async_sessionmaker[AsyncSession]
    settings: Settings
    event_bus: EventPublisher
    ocr_clients: OCRClientCache
    ocr_service: OCRService
    analysis_service: AnalysisService
    policy_provider: PolicyProvider

    @classmethod
    def build(
        cls,
        app_settings: Settings,
        session_maker: async_sessionmaker[AsyncSession],
        event_bus: EventPublisher,
        analysis_service: Optional[AnalysisService] = None,
    ) -> "StepDependencies":
        ocr_clients = OCRClientCache(app_settings.ocr)
        if analysis_service is None:
            client = None
            if app_settings.llm.gemini_api_key:
                client = GeminiClient(
                    api_key=app_settings.llm.gemini_api_key,
                    model=app_settings.llm.gemini_model,
                    timeout=app_settings.llm.timeout,
                )
            analysis_service = AnalysisService(client, app_settings.llm.max_excerpt_chars)
        return cls(
            session_maker=session_maker,
            settings=app_settings,
            event_bus=event_bus,
            ocr_clients=ocr_clients,
            ocr_service=OCRService(ocr_clients, app_settings.ocr),
            analysis_service=analysis_service,
            policy_provider=PolicyProvider(
                session_maker,
                key=app_settings.pricing.policy_key,
                pricing_settings=app_settings.pricing,
            ),
        )

    async def aclose(self) -> None:
        await self.ocr_clients.aclose()
