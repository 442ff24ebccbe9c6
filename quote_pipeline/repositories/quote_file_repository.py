"""Repository for uploaded files and their OCR pages.

Every write here is an upsert keyed by the file/page identity so that
re-delivered upload events never duplicate rows.
"""

from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quote_pipeline.database.models import QuoteFile, QuoteFileStatus, QuotePage
from quote_pipeline.repositories.base_repository import BaseRepository


class QuoteFileRepository(BaseRepository[QuoteFile]):
    """Repository for quote_files and quote_pages rows."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, QuoteFile)

    async def get_file(self, quote_id: int, file_id: str) -> Optional[QuoteFile]:
        stmt = select(QuoteFile).where(
            QuoteFile.quote_id == quote_id, QuoteFile.file_id == file_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_files(self, quote_id: int) -> List[QuoteFile]:
        stmt = select(QuoteFile).where(QuoteFile.quote_id == quote_id).order_by(QuoteFile.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def upsert_file(self, quote_id: int, file_id: str, **fields: Any) -> QuoteFile:
        """Create or update a file row keyed by (quote_id, file_id)."""
        existing = await self.get_file(quote_id, file_id)
        if existing is None:
            existing = QuoteFile(quote_id=quote_id, file_id=file_id, **fields)
            self.session.add(existing)
        else:
            for key, value in fields.items():
                if value is not None:
                    setattr(existing, key, value)
        await self.session.flush()
        return existing

    async def pending_ocr_files(self, quote_id: int) -> List[str]:
        """File ids of the quote that have not finished OCR."""
        return [
            f.file_id
            for f in await self.list_files(quote_id)
            if f.status != QuoteFileStatus.OCR_COMPLETE.value
        ]

    async def upsert_pages(
        self, quote_id: int, file_id: str, pages: Sequence[Dict[str, Any]]
    ) -> int:
        """Upsert OCR pages keyed by (quote_id, file_id, page_number).

        Returns:
            Number of newly inserted rows
        """
        stmt = select(QuotePage).where(
            QuotePage.quote_id == quote_id, QuotePage.file_id == file_id
        )
        result = await self.session.execute(stmt)
        existing = {p.page_number: p for p in result.scalars().all()}

        inserted = 0
        for page in pages:
            row = existing.get(page["page_number"])
            if row is None:
                self.session.add(QuotePage(quote_id=quote_id, file_id=file_id, **page))
                inserted += 1
            else:
                row.word_count = page["word_count"]
                row.ocr_confidence = page.get("ocr_confidence")
                row.text_excerpt = page.get("text_excerpt")

        await self.session.flush()
        self.logger.debug(
            f"Upserted {len(pages)} pages ({inserted} new) for file {file_id}",
            extra={"quote_id": quote_id, "file_id": file_id},
        )
        return inserted

    async def list_pages(self, quote_id: int) -> List[QuotePage]:
        stmt = (
            select(QuotePage)
            .where(QuotePage.quote_id == quote_id)
            .order_by(QuotePage.file_id, QuotePage.page_number)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def total_words(self, quote_id: int) -> int:
        return sum(p.word_count or 0 for p in await self.list_pages(quote_id))
