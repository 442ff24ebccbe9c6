"""Configuration check endpoint."""

from fastapi import APIRouter

from quote_pipeline.core.config import settings
from quote_pipeline.schemas.quotes import EnvCheckResponse

router = APIRouter()


@router.get(
    "/env-check",
    response_model=EnvCheckResponse,
    summary="Report which integrations are configured",
    description="Presence flags only; secret values are never returned",
    operation_id="get_env_check",
)
async def env_check() -> EnvCheckResponse:
    return EnvCheckResponse(
        database_url=bool(settings.db.url.strip()),
        mistral_api_key=bool(settings.ocr.mistral_api_key.strip()),
        mistral_ocr_url_valid=settings.ocr.endpoint.startswith(("http://", "https://")),
        gemini_api_key=bool(settings.llm.gemini_api_key.strip()),
        temporal_target=settings.temporal.target,
        task_queue=settings.temporal.task_queue,
    )
