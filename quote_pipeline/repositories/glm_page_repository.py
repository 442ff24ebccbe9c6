from typing import Any, Dict, List, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quote_pipeline.database.models import GlmPage
from quote_pipeline.repositories.base_repository import BaseRepository


class GlmPageRepository(BaseRepository[GlmPage]):
    """Per-page analysis output keyed by (quote_id, page_index)."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, GlmPage)

    async def list_for_quote(self, quote_id: int) -> List[GlmPage]:
        stmt = select(GlmPage).where(GlmPage.quote_id == quote_id).order_by(GlmPage.page_index)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def upsert_pages(self, quote_id: int, pages: Sequence[Dict[str, Any]]) -> None:
        """Overwrite analysis pages; pages missing from a re-run are removed."""
        existing = {p.page_index: p for p in await self.list_for_quote(quote_id)}
        seen = set()
        for page in pages:
            index = page["page_index"]
            seen.add(index)
            row = existing.get(index)
            if row is None:
                self.session.add(GlmPage(quote_id=quote_id, **page))
            else:
                for key, value in page.items():
                    setattr(row, key, value)

        for index, row in existing.items():
            if index not in seen:
                await self.session.delete(row)

        await self.session.flush()

    async def apply_corrections(self, quote_id: int, **fields: Any) -> int:
        """Overwrite the given fields on every analysis page of the quote.

        Returns:
            Number of pages updated
        """
        pages = await self.list_for_quote(quote_id)
        for page in pages:
            for key, value in fields.items():
                setattr(page, key, value)
        await self.session.flush()
        return len(pages)
