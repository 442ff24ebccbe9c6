"""Request and response models for the quote API."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from quote_pipeline.schemas.events import BillingInfo, QuoteOptions

IntendedUse = Literal["general", "legal", "immigration", "academic", "insurance"]
Complexity = Literal["Easy", "Medium", "Hard"]


class SubmitQuoteRequest(BaseModel):
    intended_use: IntendedUse = "general"
    languages: List[str] = Field(default_factory=list)
    billing: BillingInfo = Field(default_factory=BillingInfo)
    options: QuoteOptions = Field(default_factory=QuoteOptions)
    event_id: Optional[str] = Field(default=None, description="Optional idempotency key")


class RequestHitlRequest(BaseModel):
    reason: str = "user_requested"


class HitlResolveRequest(BaseModel):
    """Optional operator corrections to the analysis summary."""

    complexity: Optional[Complexity] = None
    doc_type: Optional[str] = None
    country_of_issue: Optional[str] = None
    billable_words: Optional[int] = Field(default=None, ge=0)
    names: Optional[List[str]] = None


class PublishEventRequest(BaseModel):
    name: str
    id: Optional[str] = Field(default=None, description="Idempotency key; generated when omitted")
    data: Dict[str, Any]


class ActionResponse(BaseModel):
    ok: bool = True
    quote_id: Optional[int] = None
    status: Optional[str] = None
    event_id: Optional[str] = None


class QuoteStatusResponse(BaseModel):
    quote_id: int
    status: str
    stage: str
    total: Optional[float] = None
    currency: Optional[str] = None


class EnvCheckResponse(BaseModel):
    database_url: bool
    mistral_api_key: bool
    mistral_ocr_url_valid: bool
    gemini_api_key: bool
    temporal_target: str
    task_queue: str
