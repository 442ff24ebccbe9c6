from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from quote_pipeline.database.models import QuoteEvent
from quote_pipeline.repositories.base_repository import BaseRepository


class EventRepository(BaseRepository[QuoteEvent]):
    """Outbox of published events, unique on event_id."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, QuoteEvent)

    async def get_by_event_id(self, event_id: str) -> Optional[QuoteEvent]:
        stmt = select(QuoteEvent).where(QuoteEvent.event_id == event_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def record(
        self, event_id: str, name: str, quote_id: Optional[int], payload: Dict[str, Any]
    ) -> Tuple[QuoteEvent, bool]:
        """Record an event once.

        Returns:
            The outbox row and True if it was newly created
        """
        existing = await self.get_by_event_id(event_id)
        if existing is not None:
            return existing, False
        row = QuoteEvent(event_id=event_id, name=name, quote_id=quote_id, payload=payload)
        self.session.add(row)
        try:
            await self.session.flush()
        except IntegrityError:
            # A concurrent publish inserted the same event id first
            await self.session.rollback()
            existing = await self.get_by_event_id(event_id)
            if existing is None:
                raise
            self.logger.info(f"Event {event_id} recorded concurrently, reusing stored row")
            return existing, False
        return row, True

    async def mark_dispatched(self, event_id: str) -> None:
        row = await self.get_by_event_id(event_id)
        if row is not None and row.dispatched_at is None:
            row.dispatched_at = datetime.now(timezone.utc)
            await self.session.flush()

    async def list_for_quote(self, quote_id: int, name: Optional[str] = None) -> List[QuoteEvent]:
        stmt = select(QuoteEvent).where(QuoteEvent.quote_id == quote_id)
        if name:
            stmt = stmt.where(QuoteEvent.name == name)
        result = await self.session.execute(stmt.order_by(QuoteEvent.id))
        return list(result.scalars().all())
