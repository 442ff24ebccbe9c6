from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from quote_pipeline.core.exceptions import QuoteNotFoundError
from quote_pipeline.database.models import Quote, QuoteStatus
from quote_pipeline.repositories.base_repository import BaseRepository

# Fields the pricing step owns on the quote row
BILLING_FIELDS = (
    "billable_pages",
    "per_page_rate",
    "certification_fee",
    "shipping_fee",
    "rush_percent",
    "subtotal",
    "tax_rate",
    "tax_amount",
    "total",
)


class QuoteRepository(BaseRepository[Quote]):
    """Repository for quote records."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Quote)

    async def get_or_raise(self, quote_id: int) -> Quote:
        quote = await self.get_by_id(quote_id)
        if quote is None:
            raise QuoteNotFoundError(f"Quote {quote_id} not found")
        return quote

    async def get_status(self, quote_id: int) -> Optional[str]:
        """Return the quote status, or None when the quote does not exist."""
        quote = await self.get_by_id(quote_id)
        return quote.status if quote else None

    async def set_status(self, quote_id: int, status: QuoteStatus) -> Quote:
        quote = await self.get_or_raise(quote_id)
        quote.status = status.value
        await self.session.flush()
        self.logger.info(
            f"Quote {quote_id} status -> {status.value}",
            extra={"quote_id": quote_id, "status": status.value},
        )
        return quote

    async def advance_to_analysis_ok(self, quote_id: int) -> Optional[Quote]:
        """Move an uploading quote to analysis_ok; later states are left alone."""
        quote = await self.get_by_id(quote_id)
        if quote is None:
            return None
        if quote.status == QuoteStatus.UPLOADING.value:
            quote.status = QuoteStatus.ANALYSIS_OK.value
            await self.session.flush()
        return quote

    async def save_submission(self, quote_id: int, submission: Dict[str, Any]) -> Quote:
        """Persist the customer's submitted options on the quote."""
        quote = await self.get_or_raise(quote_id)
        billing = submission.get("billing") or {}
        options = submission.get("options") or {}
        quote.intended_use = submission.get("intended_use") or "general"
        quote.languages = list(submission.get("languages") or [])
        quote.billing_country = billing.get("country")
        quote.billing_region = billing.get("region")
        quote.currency = billing.get("currency") or quote.currency
        quote.rush_tier = options.get("rush")
        quote.certification_type = options.get("certification")
        quote.shipping_method = options.get("shipping")
        await self.session.flush()
        return quote

    async def save_pricing(self, quote_id: int, **billing: Any) -> Quote:
        """Write computed billing fields and mark the quote ready."""
        quote = await self.get_or_raise(quote_id)
        for field in BILLING_FIELDS:
            if field in billing:
                setattr(quote, field, billing[field])
        quote.status = QuoteStatus.READY.value
        await self.session.flush()
        return quote
