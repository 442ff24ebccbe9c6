from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quote_pipeline.database.models import GlmJob, JobStatus, OcrJob
from quote_pipeline.repositories.base_repository import BaseRepository


class OcrJobRepository(BaseRepository[OcrJob]):
    """OCR job tracking, one row per (quote, file)."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, OcrJob)

    async def get_job(self, quote_id: int, file_id: str) -> Optional[OcrJob]:
        stmt = select(OcrJob).where(OcrJob.quote_id == quote_id, OcrJob.file_id == file_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert_status(
        self,
        quote_id: int,
        file_id: str,
        status: JobStatus,
        error: Optional[str] = None,
        attempt: Optional[int] = None,
    ) -> OcrJob:
        job = await self.get_job(quote_id, file_id)
        if job is None:
            job = OcrJob(quote_id=quote_id, file_id=file_id, retry_count=0)
            self.session.add(job)
        job.status = status.value
        if error is not None:
            job.last_error = error
        if attempt is not None:
            job.retry_count = max(attempt - 1, 0)
        await self.session.flush()
        return job


class GlmJobRepository(BaseRepository[GlmJob]):
    """Analysis job tracking; at most one row per quote."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, GlmJob)

    async def get_for_quote(self, quote_id: int) -> Optional[GlmJob]:
        stmt = select(GlmJob).where(GlmJob.quote_id == quote_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_status(self, quote_id: int) -> Optional[str]:
        job = await self.get_for_quote(quote_id)
        return job.status if job else None

    async def upsert(self, quote_id: int, status: JobStatus, **fields: Any) -> GlmJob:
        """Create or update the quote's single analysis job."""
        job = await self.get_for_quote(quote_id)
        if job is None:
            job = GlmJob(quote_id=quote_id, retry_count=0)
            self.session.add(job)
        elif status == JobStatus.STARTED and job.status in (
            JobStatus.SUCCEEDED.value,
            JobStatus.FAILED.value,
        ):
            job.retry_count = (job.retry_count or 0) + 1
        job.status = status.value
        for key, value in fields.items():
            setattr(job, key, value)
        await self.session.flush()
        return job
