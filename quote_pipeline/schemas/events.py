"""Event names and payload models exchanged between pipeline steps."""

from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field


class EventName:
    FILES_UPLOADED = "files/uploaded"
    OCR_COMPLETE = "files/ocr-complete"
    ANALYSIS_COMPLETE = "files/analysis-complete"
    QUOTE_SUBMITTED = "quote/submitted"
    QUOTE_READY = "quote/ready"
    MANUAL_REVIEW_REQUIRED = "quote/manual-review-required"
    QUOTE_CREATED = "quote/created"
    COMPUTE_PRICING_SHIM = "internal/compute-pricing-shim"


class EventPayload(BaseModel):
    """Base for event payloads; unknown keys are kept for forward compatibility."""

    model_config = ConfigDict(extra="allow")

    quote_id: int


class FilesUploaded(EventPayload):
    file_id: str
    gcs_uri: str
    filename: str
    bytes: int = 0
    mime: str = "application/pdf"


class OcrComplete(EventPayload):
    file_id: str
    page_count: int = 0
    avg_confidence: float = 0.0
    languages: Dict[str, float] = Field(default_factory=dict)


class AnalysisComplete(EventPayload):
    doc_type: Optional[str] = None
    country_of_issue: Optional[str] = None
    complexity: Optional[str] = None
    names: List[str] = Field(default_factory=list)
    billing: Dict[str, Any] = Field(default_factory=dict)


class BillingInfo(BaseModel):
    country: Optional[str] = None
    region: Optional[str] = None
    currency: Optional[str] = "CAD"


class QuoteOptions(BaseModel):
    rush: Optional[str] = None
    certification: Optional[str] = None
    shipping: Optional[str] = None


class QuoteSubmitted(EventPayload):
    intended_use: Optional[str] = "general"
    languages: List[str] = Field(default_factory=list)
    billing: BillingInfo = Field(default_factory=BillingInfo)
    options: QuoteOptions = Field(default_factory=QuoteOptions)


class QuoteReady(EventPayload):
    total: Optional[float] = None


class ManualReviewRequired(EventPayload):
    reason: str


class CreatedFile(BaseModel):
    file_id: str
    gcs_uri: Optional[str] = None
    filename: Optional[str] = None
    bytes: int = 0
    mime: Optional[str] = None


class QuoteCreated(EventPayload):
    files: List[CreatedFile] = Field(default_factory=list)


class Event(BaseModel):
    """Envelope published on the event bus.

    ``id`` is the idempotency key: an event with an id that was already
    published is neither recorded nor dispatched again.
    """

    name: str
    id: str
    data: Dict[str, Any]

    @property
    def quote_id(self) -> Optional[int]:
        value = self.data.get("quote_id")
        return int(value) if value is not None else None


PAYLOAD_MODELS: Dict[str, Type[EventPayload]] = {
    EventName.FILES_UPLOADED: FilesUploaded,
    EventName.OCR_COMPLETE: OcrComplete,
    EventName.ANALYSIS_COMPLETE: AnalysisComplete,
    EventName.QUOTE_SUBMITTED: QuoteSubmitted,
    EventName.QUOTE_READY: QuoteReady,
    EventName.MANUAL_REVIEW_REQUIRED: ManualReviewRequired,
    EventName.QUOTE_CREATED: QuoteCreated,
    EventName.COMPUTE_PRICING_SHIM: QuoteSubmitted,
}


def make_event(name: str, event_id: str, payload: EventPayload) -> Event:
    """Build an envelope from a typed payload."""
    return Event(name=name, id=event_id, data=payload.model_dump(mode="json"))


def parse_payload(name: str, data: Dict[str, Any]) -> EventPayload:
    """Validate raw event data against the payload model registered for ``name``."""
    model = PAYLOAD_MODELS.get(name, EventPayload)
    return model.model_validate(data)
