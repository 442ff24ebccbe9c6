from typing import Any, Dict

from quote_pipeline.database.models import JobStatus, QuoteFileStatus
from quote_pipeline.repositories import (
    GlmJobRepository,
    OcrJobRepository,
    QuoteFileRepository,
    QuoteRepository,
)
from quote_pipeline.schemas.events import QuoteCreated
from quote_pipeline.services.steps.dependencies import StepDependencies
from quote_pipeline.utils.logging import get_logger

LOGGER = get_logger(__name__)


class PrepareJobsStep:
    """Ensures file rows and queued job records exist for a new quote."""

    def __init__(self, deps: StepDependencies):
        self.deps = deps

    async def prepare(self, payload: QuoteCreated) -> Dict[str, Any]:
        quote_id = payload.quote_id
        async with self.deps.session_maker() as session:
            await QuoteRepository(session).get_or_raise(quote_id)
            files = QuoteFileRepository(session)
            ocr_jobs = OcrJobRepository(session)
            glm_jobs = GlmJobRepository(session)

            queued = 0
            for item in payload.files:
                existing = await files.get_file(quote_id, item.file_id)
                if existing is None:
                    await files.upsert_file(
                        quote_id,
                        item.file_id,
                        storage_uri=item.gcs_uri,
                        filename=item.filename,
                        bytes=item.bytes,
                        mime=item.mime,
                        status=QuoteFileStatus.UPLOADED.value,
                    )
                if await ocr_jobs.get_job(quote_id, item.file_id) is None:
                    await ocr_jobs.upsert_status(quote_id, item.file_id, JobStatus.QUEUED)
                    queued += 1

            glm_job = await glm_jobs.get_for_quote(quote_id)
            if glm_job is None:
                glm_job = await glm_jobs.upsert(quote_id, JobStatus.QUEUED)
            await session.commit()

        LOGGER.info(
            f"Prepared jobs for quote {quote_id}",
            extra={"quote_id": quote_id, "files": len(payload.files), "ocr_jobs_queued": queued},
        )
        return {
            "quote_id": quote_id,
            "files": len(payload.files),
            "ocr_jobs_queued": queued,
            "glm_job_status": glm_job.status,
        }
